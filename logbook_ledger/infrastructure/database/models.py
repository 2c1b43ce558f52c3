"""SQLAlchemy ORM models for users, categories and transactions"""

from sqlalchemy import Column, String, Boolean, DateTime, Date, Integer, ForeignKey, Numeric, Text, Index, text
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class User(Base):
    """Ledger owner and their billing cycle configuration"""

    __tablename__ = "users"

    id = Column(Text, primary_key=True)
    username = Column(String(100), nullable=False)
    currency_id = Column(Integer, nullable=False, default=1)
    monthly_start_date = Column(Integer, nullable=True)  # Billing cycle start day, 1..31
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Category(Base):
    """Transaction category (opaque to the ledger except for the income category)"""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Transaction(Base):
    """Ledger transaction; rows with is_income set are the per-period income entry"""

    __tablename__ = "transactions"
    __table_args__ = (
        # At most one income row per user per billing period (keyed by period start date)
        Index(
            "uq_transactions_income_period",
            "user_id",
            "transaction_date",
            unique=True,
            sqlite_where=text("is_income"),
            postgresql_where=text("is_income"),
        ),
        Index("ix_transactions_user_date", "user_id", "transaction_date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Text, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    transaction_date = Column(Date, nullable=False)
    transaction_name = Column(Text, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    currency_id = Column(Integer, nullable=False)
    transaction_type = Column(Integer, nullable=False, default=0)  # 0 = debit, 1 = credit
    is_income = Column(Boolean, nullable=False, default=False)
    comments = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    category = relationship("Category")
