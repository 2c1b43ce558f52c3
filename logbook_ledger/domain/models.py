"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import IntEnum


class Direction(IntEnum):
    """Money flow of a transaction, as stored in transaction_type"""

    DEBIT = 0
    CREDIT = 1


@dataclass(frozen=True)
class BillingCycle:
    """Current period of a user's billing cycle, recomputed on every query"""

    start_day: int
    period_start: date
    period_end: date

    def contains(self, day: date) -> bool:
        return self.period_start <= day <= self.period_end


@dataclass(frozen=True)
class CandidateTransaction:
    """Transaction inferred from a bank statement, pending user confirmation"""

    date: date
    name: str
    amount: Decimal
    direction: Direction
    currency_id: int
    user_id: str
    source_text: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class CategoryTotal:
    """Net spend for one category over a period (debits minus credits)"""

    category_id: int
    category_name: str
    total_amount: Decimal


@dataclass(frozen=True)
class IncomeUpsertResult:
    """Outcome of recording income for the active period"""

    transaction_id: int
    period_start: date
    amount: Decimal
    inserted: bool
