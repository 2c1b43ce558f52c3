"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from typing import List


class CandidateTransactionSchema(BaseModel):
    """Unconfirmed transaction extracted from a statement, in transaction-API field names"""

    transaction_date: date
    transaction_name: str
    amount: Decimal
    transaction_type: int = Field(..., description="0 = debit, 1 = credit")
    code: str = Field(..., description="Original statement description")
    currency_id: int
    user_id: str
    created_at: datetime
    updated_at: datetime


class StatementResponse(BaseModel):
    """Response for POST /v1/statements/process"""

    message: str
    transactions: List[CandidateTransactionSchema]


class TransactionSchema(BaseModel):
    """Persisted ledger transaction"""

    transaction_id: int
    transaction_date: date
    transaction_name: str
    amount: Decimal
    transaction_type: int
    category_id: int | None = None
    currency_id: int
    is_income: bool


class CurrentPeriodResponse(BaseModel):
    """Response for GET /v1/transactions/current-period"""

    user_id: str
    period_start: date
    period_end: date
    transactions: List[TransactionSchema]


class CategoryAggregateSchema(BaseModel):
    """Net spend for one category"""

    category_id: int
    category_name: str
    total_amount: Decimal


class CategoryAggregatesResponse(BaseModel):
    """Response for GET /v1/transactions/category-aggregates"""

    user_id: str
    period_start: date
    period_end: date
    categories: List[CategoryAggregateSchema]


class IncomeRequest(BaseModel):
    """Request body for PUT /v1/transactions/income"""

    amount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2, description="Income for the current period")


class IncomeResponse(BaseModel):
    """Response for PUT /v1/transactions/income"""

    transaction_id: int
    period_start: date
    amount: Decimal
    action: str  # inserted | updated


class BillingCycleRequest(BaseModel):
    """Request body for PUT /v1/users/{user_id}/billing-cycle"""

    start_day: int = Field(..., ge=1, le=31, description="Day of month the billing cycle starts")


class BillingCycleResponse(BaseModel):
    """Current billing cycle of a user"""

    user_id: str
    start_day: int
    period_start: date
    period_end: date
