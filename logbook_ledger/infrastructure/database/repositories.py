"""Data access layer for ledger entities"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from sqlalchemy import case, func
from sqlalchemy.orm import Session
from logbook_ledger.infrastructure.database.models import User, Category, Transaction
from logbook_ledger.domain.cycle import validate_cycle_day
from logbook_ledger.domain.exceptions import CycleNotConfigured, InvalidCycleDay, UserNotFound
from logbook_ledger.domain.models import CategoryTotal, Direction


class UserRepository:
    """Repository for users and their billing cycle configuration"""

    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: str) -> User:
        """Fetch a user or raise UserNotFound"""
        user = self.db.get(User, user_id)
        if user is None:
            raise UserNotFound(f"User {user_id} not found")
        return user

    def get_cycle_start_day(self, user_id: str) -> int:
        """
        Configured billing cycle start day for a user.

        Raises:
            UserNotFound: No such user
            CycleNotConfigured: Start day unset or outside 1..31
        """
        user = self.get_user(user_id)
        try:
            return validate_cycle_day(user.monthly_start_date)
        except InvalidCycleDay as e:
            raise CycleNotConfigured(f"Billing cycle start day not set for user {user_id}") from e

    def set_cycle_start_day(self, user_id: str, start_day: int, now: datetime) -> User:
        user = self.get_user(user_id)
        user.monthly_start_date = validate_cycle_day(start_day)
        user.updated_at = now
        self.db.flush()
        return user


class CategoryRepository:
    """Repository for categories"""

    def __init__(self, db: Session):
        self.db = db

    def get_or_create(self, name: str) -> Category:
        """Fetch a category by name, creating it on first use"""
        category = self.db.query(Category).filter(Category.name == name).first()
        if category is None:
            category = Category(name=name)
            self.db.add(category)
            self.db.flush()
        return category


class TransactionRepository:
    """Repository for ledger transactions"""

    def __init__(self, db: Session):
        self.db = db

    def list_between(self, user_id: str, start: date, end: date) -> List[Transaction]:
        """Transactions dated within [start, end], newest first"""
        return (
            self.db.query(Transaction)
            .filter(
                Transaction.user_id == user_id,
                Transaction.transaction_date >= start,
                Transaction.transaction_date <= end,
            )
            .order_by(Transaction.transaction_date.desc(), Transaction.id.desc())
            .all()
        )

    def category_totals_between(
        self,
        user_id: str,
        start: date,
        end: date,
        exclude_category: str,
    ) -> List[CategoryTotal]:
        """Net spend per category over [start, end]: debits add, credits subtract"""
        signed_amount = case(
            (Transaction.transaction_type == int(Direction.DEBIT), Transaction.amount),
            (Transaction.transaction_type == int(Direction.CREDIT), -Transaction.amount),
            else_=0,
        )
        total = func.sum(signed_amount)
        rows = (
            self.db.query(Transaction.category_id, Category.name, total.label("total_amount"))
            .join(Category, Transaction.category_id == Category.id)
            .filter(
                Transaction.user_id == user_id,
                Category.name != exclude_category,
                Transaction.transaction_date >= start,
                Transaction.transaction_date <= end,
            )
            .group_by(Transaction.category_id, Category.name)
            .order_by(total.desc())
            .all()
        )
        return [
            CategoryTotal(
                category_id=row.category_id,
                category_name=row.name,
                total_amount=Decimal(str(row.total_amount or 0)),
            )
            for row in rows
        ]

    def find_income_entry(self, user_id: str, period_start: date) -> Optional[Transaction]:
        """Income row for the period, locked for update where the database supports it"""
        return (
            self.db.query(Transaction)
            .filter(
                Transaction.user_id == user_id,
                Transaction.is_income.is_(True),
                Transaction.transaction_date == period_start,
            )
            .with_for_update()
            .first()
        )

    def add_transaction(self, transaction: Transaction) -> Transaction:
        """Stage a transaction and flush it to get its ID without committing"""
        self.db.add(transaction)
        self.db.flush()
        return transaction
