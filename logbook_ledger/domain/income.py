"""Income bookkeeping - one income entry per user per billing period"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from logbook_ledger.config import settings
from logbook_ledger.domain.cycle import resolve_billing_cycle
from logbook_ledger.domain.models import Direction, IncomeUpsertResult
from logbook_ledger.infrastructure.database.models import Transaction
from logbook_ledger.infrastructure.database.repositories import (
    CategoryRepository,
    TransactionRepository,
    UserRepository,
)
from logbook_ledger.infrastructure.observability.metrics import income_upsert_counter
from logbook_ledger.utils.date_utils import utc_now

logger = logging.getLogger(__name__)

INCOME_TRANSACTION_NAME = "Income"


class IncomeLedgerUpserter:
    """
    Record the user's income for the active billing period.

    The income entry is a transaction flagged is_income, dated exactly on the
    period start. A partial unique index on (user_id, transaction_date) for
    income rows backs the one-per-period rule: if a concurrent request inserts
    first, our insert's savepoint is rolled back and the winner's row is
    updated instead. The caller owns the outer transaction and commits.
    """

    def __init__(
        self,
        db: Session,
        clock: Callable[[], datetime] = utc_now,
        income_category_name: str | None = None,
    ):
        self.db = db
        self.clock = clock
        self.income_category_name = income_category_name or settings.income_category_name

    def upsert_income(self, user_id: str, amount: Decimal) -> IncomeUpsertResult:
        """
        Insert or update the income entry for the current period.

        Raises:
            UserNotFound: No such user
            CycleNotConfigured: User has no valid billing cycle start day
        """
        users = UserRepository(self.db)
        user = users.get_user(user_id)
        start_day = users.get_cycle_start_day(user_id)

        now = self.clock()
        cycle = resolve_billing_cycle(start_day, now.date())
        transactions = TransactionRepository(self.db)

        entry = transactions.find_income_entry(user_id, cycle.period_start)
        if entry is None:
            category = CategoryRepository(self.db).get_or_create(self.income_category_name)
            try:
                with self.db.begin_nested():
                    entry = transactions.add_transaction(
                        Transaction(
                            user_id=user_id,
                            category_id=category.id,
                            transaction_date=cycle.period_start,
                            transaction_name=INCOME_TRANSACTION_NAME,
                            amount=amount,
                            currency_id=user.currency_id,
                            transaction_type=int(Direction.DEBIT),
                            is_income=True,
                            created_at=now,
                            updated_at=now,
                        )
                    )
            except IntegrityError:
                # Lost the race to a concurrent upsert for the same period
                entry = transactions.find_income_entry(user_id, cycle.period_start)
                if entry is None:
                    raise
                logger.info(
                    "Concurrent income insert detected, updating existing entry",
                    extra={"user_id": user_id, "period_start": cycle.period_start.isoformat()},
                )
            else:
                income_upsert_counter.labels(action="inserted").inc()
                return IncomeUpsertResult(
                    transaction_id=entry.id,
                    period_start=cycle.period_start,
                    amount=Decimal(str(amount)),
                    inserted=True,
                )

        entry.amount = amount
        entry.updated_at = now
        self.db.flush()
        income_upsert_counter.labels(action="updated").inc()
        return IncomeUpsertResult(
            transaction_id=entry.id,
            period_start=cycle.period_start,
            amount=Decimal(str(amount)),
            inserted=False,
        )
