import uuid
import datetime
import enum
from sqlalchemy import CheckConstraint, Column, DateTime, Index, Numeric, String, Uuid
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class TransactionType(str, enum.Enum):
    INCOME = "income"
    EXPENSE = "expense"


def utcnow() -> datetime.datetime:
    # Stored naive, always UTC
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    type = Column(String(10), nullable=False)
    amount = Column(Numeric(18, 2), nullable=False)
    description = Column(String(255), nullable=False)
    category = Column(String(50), nullable=False)
    date = Column(DateTime, nullable=False, default=utcnow)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("type IN ('income', 'expense')", name="ck_transactions_type"),
        CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
        CheckConstraint("length(description) > 0", name="ck_transactions_description_not_empty"),
        CheckConstraint("length(category) > 0", name="ck_transactions_category_not_empty"),
        Index("ix_transactions_type_date", "type", "date"),
        Index("ix_transactions_category", "category"),
        Index("ix_transactions_date", "date"),
        Index("ix_transactions_created_at", "created_at"),
    )

    def __repr__(self):
        return f"<Transaction(type='{self.type}', amount='{self.amount}', category='{self.category}')>"
