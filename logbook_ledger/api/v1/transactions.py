"""Current billing period reads and income bookkeeping"""

import logging
from datetime import datetime
from typing import Callable
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from logbook_ledger.api.v1.schemas import (
    CategoryAggregateSchema,
    CategoryAggregatesResponse,
    CurrentPeriodResponse,
    IncomeRequest,
    IncomeResponse,
    TransactionSchema,
)
from logbook_ledger.api.dependencies import get_clock, get_request_id, load_user_cycle
from logbook_ledger.config import settings
from logbook_ledger.domain.cycle import resolve_billing_cycle
from logbook_ledger.domain.exceptions import CycleNotConfigured, UserNotFound
from logbook_ledger.domain.income import IncomeLedgerUpserter
from logbook_ledger.infrastructure.database.repositories import TransactionRepository, UserRepository
from logbook_ledger.infrastructure.database.session import get_db

router = APIRouter()


@router.get("/transactions/current-period", response_model=CurrentPeriodResponse)
def get_current_period_transactions(
    user_id: str = Query(..., description="User identifier"),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    List the user's transactions in the active billing period.

    Returns:
        Transactions from period start through today, newest first
    """
    _, start_day = load_user_cycle(UserRepository(db), user_id)
    cycle = resolve_billing_cycle(start_day, clock().date())

    transactions = TransactionRepository(db).list_between(user_id, cycle.period_start, cycle.period_end)

    return CurrentPeriodResponse(
        user_id=user_id,
        period_start=cycle.period_start,
        period_end=cycle.period_end,
        transactions=[
            TransactionSchema(
                transaction_id=t.id,
                transaction_date=t.transaction_date,
                transaction_name=t.transaction_name,
                amount=t.amount,
                transaction_type=t.transaction_type,
                category_id=t.category_id,
                currency_id=t.currency_id,
                is_income=t.is_income,
            )
            for t in transactions
        ],
    )


@router.get("/transactions/category-aggregates", response_model=CategoryAggregatesResponse)
def get_category_aggregates(
    user_id: str = Query(..., description="User identifier"),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Net spend per category in the active billing period (income excluded).

    Debits count positive and credits negative, so refunds reduce a category's total.
    """
    _, start_day = load_user_cycle(UserRepository(db), user_id)
    cycle = resolve_billing_cycle(start_day, clock().date())

    totals = TransactionRepository(db).category_totals_between(
        user_id,
        cycle.period_start,
        cycle.period_end,
        exclude_category=settings.income_category_name,
    )

    return CategoryAggregatesResponse(
        user_id=user_id,
        period_start=cycle.period_start,
        period_end=cycle.period_end,
        categories=[
            CategoryAggregateSchema(
                category_id=t.category_id,
                category_name=t.category_name,
                total_amount=t.total_amount,
            )
            for t in totals
        ],
    )


@router.put("/transactions/income", response_model=IncomeResponse)
def upsert_income(
    request_body: IncomeRequest,
    request: Request,
    user_id: str = Query(..., description="User identifier"),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Set the user's income for the active billing period.

    Updates the period's income entry if there is one, otherwise creates it
    dated on the period start.
    """
    request_id = get_request_id(request)

    try:
        result = IncomeLedgerUpserter(db, clock=clock).upsert_income(user_id, request_body.amount)
        db.commit()

    except UserNotFound:
        db.rollback()
        raise HTTPException(status_code=404, detail="User not found")

    except CycleNotConfigured:
        db.rollback()
        raise HTTPException(
            status_code=409,
            detail={"message": "Billing cycle not configured", "reason": "cycle_not_configured"},
        )

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    logging.info(
        "Income upserted",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "period_start": result.period_start.isoformat(),
            "action": "inserted" if result.inserted else "updated",
        },
    )

    return IncomeResponse(
        transaction_id=result.transaction_id,
        period_start=result.period_start,
        amount=result.amount,
        action="inserted" if result.inserted else "updated",
    )
