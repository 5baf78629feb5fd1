from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional, Tuple, Union

from sqlalchemy import extract, func, select
from sqlalchemy.exc import DataError, IntegrityError
from sqlalchemy.orm import Session

from expense_tracker.core.errors import InvalidIdError, ValidationFailedError
from expense_tracker.models import Transaction, TransactionType, utcnow
from expense_tracker.schemas.transactions import TransactionIn

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

# Storage-level CHECK constraints -> (field, message) reported back to the client
CONSTRAINT_FIELDS = {
    "ck_transactions_type": ("type", "Type must be either income or expense"),
    "ck_transactions_amount_positive": ("amount", "Amount must be greater than 0"),
    "ck_transactions_description_not_empty": ("description", "Description cannot be empty"),
    "ck_transactions_category_not_empty": ("category", "Category cannot be empty"),
}


def round_amount(value: Union[Decimal, float, int]) -> Decimal:
    if not isinstance(value, Decimal):
        value = Decimal(repr(value)) if isinstance(value, float) else Decimal(value)
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def normalize_category(value: str) -> str:
    """'fOOD' -> 'Food'."""
    return value[:1].upper() + value[1:].lower()


@dataclass
class TransactionFilters:
    type: Optional[TransactionType] = None
    category: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


@dataclass
class Summary:
    totalIncome: Decimal
    totalExpenses: Decimal
    balance: Decimal
    transactionCount: int


@dataclass
class CategoryTotal:
    category: str
    total: Decimal
    count: int


def _parse_id(transaction_id: Union[str, uuid.UUID]) -> uuid.UUID:
    if isinstance(transaction_id, uuid.UUID):
        return transaction_id
    try:
        return uuid.UUID(str(transaction_id))
    except ValueError:
        raise InvalidIdError(details={"id": str(transaction_id)})


class TransactionStore:
    """Persistence and aggregation queries over the ``transactions`` table."""

    def __init__(self, session: Session) -> None:
        self.session = session

    # --- CRUD ---

    def create(self, data: TransactionIn) -> Transaction:
        tx = Transaction(id=uuid.uuid4())
        self._apply(tx, data)
        self.session.add(tx)
        self._commit()
        self.session.refresh(tx)
        logger.info(f"Transaction created: {tx.id} ({tx.type} {tx.amount})")
        return tx

    def find_by_id(self, transaction_id: Union[str, uuid.UUID]) -> Optional[Transaction]:
        tx_id = _parse_id(transaction_id)
        return self.session.get(Transaction, tx_id)

    def list(
        self,
        filters: TransactionFilters,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Transaction], int]:
        conditions = self._conditions(filters)

        stmt = (
            select(Transaction)
            .where(*conditions)
            .order_by(Transaction.date.desc(), Transaction.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        transactions = list(self.session.execute(stmt).scalars().all())

        count_stmt = select(func.count()).select_from(Transaction).where(*conditions)
        total = self.session.execute(count_stmt).scalar_one()
        return transactions, total

    def update(self, transaction_id: Union[str, uuid.UUID], data: TransactionIn) -> Optional[Transaction]:
        tx = self.find_by_id(transaction_id)
        if tx is None:
            return None
        self._apply(tx, data)
        tx.updated_at = utcnow()
        self._commit()
        self.session.refresh(tx)
        logger.info(f"Transaction updated: {tx.id}")
        return tx

    def delete(self, transaction_id: Union[str, uuid.UUID]) -> bool:
        tx = self.find_by_id(transaction_id)
        if tx is None:
            return False
        self.session.delete(tx)
        self._commit()
        logger.info(f"Transaction deleted: {tx.id}")
        return True

    # --- Aggregations ---

    def summary(self) -> Summary:
        stmt = select(
            Transaction.type,
            func.sum(Transaction.amount).label("total"),
            func.count(Transaction.id).label("count"),
        ).group_by(Transaction.type)

        result = Summary(
            totalIncome=Decimal("0"),
            totalExpenses=Decimal("0"),
            balance=Decimal("0"),
            transactionCount=0,
        )
        for tx_type, total, count in self.session.execute(stmt).all():
            if tx_type == TransactionType.INCOME.value:
                result.totalIncome = Decimal(total or 0)
            elif tx_type == TransactionType.EXPENSE.value:
                result.totalExpenses = Decimal(total or 0)
            result.transactionCount += count

        result.balance = result.totalIncome - result.totalExpenses
        return result

    def category_breakdown(self, tx_type: Optional[TransactionType] = None) -> List[CategoryTotal]:
        """Per-category totals, largest first; equal totals ordered by category name."""
        total = func.sum(Transaction.amount).label("total")
        stmt = select(
            Transaction.category,
            total,
            func.count(Transaction.id).label("count"),
        )
        if tx_type is not None:
            stmt = stmt.where(Transaction.type == TransactionType(tx_type).value)
        stmt = stmt.group_by(Transaction.category).order_by(total.desc(), Transaction.category.asc())

        return [
            CategoryTotal(category=category, total=Decimal(amount or 0), count=count)
            for category, amount, count in self.session.execute(stmt).all()
        ]

    def monthly_trends(self, since: datetime) -> Dict[str, Dict[str, Decimal]]:
        """Income/expense totals per calendar month of ``date`` for records on or after ``since``.

        Keys are ``YYYY-MM`` in ascending order; a type with no records in a
        month reports 0.
        """
        year = extract("year", Transaction.date)
        month = extract("month", Transaction.date)
        stmt = (
            select(
                year.label("year"),
                month.label("month"),
                Transaction.type,
                func.sum(Transaction.amount).label("total"),
            )
            .where(Transaction.date >= since)
            .group_by(year, month, Transaction.type)
            .order_by(year, month)
        )

        trends: Dict[str, Dict[str, Decimal]] = {}
        for row_year, row_month, tx_type, total in self.session.execute(stmt).all():
            key = f"{int(row_year):04d}-{int(row_month):02d}"
            bucket = trends.setdefault(
                key,
                {TransactionType.INCOME.value: Decimal("0"), TransactionType.EXPENSE.value: Decimal("0")},
            )
            bucket[tx_type] = Decimal(total or 0)
        return trends

    def recent(self, limit: int = 10) -> List[Transaction]:
        stmt = select(Transaction).order_by(Transaction.created_at.desc()).limit(limit)
        return list(self.session.execute(stmt).scalars().all())

    def distinct_categories(self, tx_type: Optional[TransactionType] = None) -> List[str]:
        stmt = select(Transaction.category).distinct()
        if tx_type is not None:
            stmt = stmt.where(Transaction.type == TransactionType(tx_type).value)
        return sorted(self.session.execute(stmt).scalars().all())

    # --- Internals ---

    def _apply(self, tx: Transaction, data: TransactionIn) -> None:
        tx.type = TransactionType(data.type).value
        tx.amount = round_amount(data.amount)
        tx.description = data.description.strip()
        tx.category = normalize_category(data.category.strip())
        tx.date = data.date or utcnow()

    def _conditions(self, filters: TransactionFilters) -> List:
        conditions = []
        if filters.type is not None:
            conditions.append(Transaction.type == TransactionType(filters.type).value)
        if filters.category:
            conditions.append(
                func.lower(Transaction.category).contains(filters.category.lower(), autoescape=True)
            )
        if filters.start_date is not None:
            conditions.append(Transaction.date >= filters.start_date)
        if filters.end_date is not None:
            conditions.append(Transaction.date <= filters.end_date)
        return conditions

    def _commit(self) -> None:
        try:
            self.session.commit()
        except (IntegrityError, DataError) as exc:
            self.session.rollback()
            logger.error(f"Storage rejected transaction: {exc.orig}")
            raise ValidationFailedError(details=_constraint_details(exc))


def _constraint_details(exc: Exception) -> list[dict[str, str]]:
    reason = str(getattr(exc, "orig", exc))
    details = [
        {"field": field, "message": message}
        for name, (field, message) in CONSTRAINT_FIELDS.items()
        if name in reason
    ]
    return details or [{"field": "transaction", "message": reason}]
