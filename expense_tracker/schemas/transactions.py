from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, computed_field

from expense_tracker.models import Transaction, TransactionType
from expense_tracker.schemas.common import ResponseEnvelope


class TransactionIn(BaseModel):
    """Validated and coerced transaction payload, ready to persist."""

    type: TransactionType
    amount: Decimal
    description: str
    category: str
    date: Optional[datetime] = None


class TransactionOut(BaseModel):
    id: UUID
    type: TransactionType
    amount: float
    description: str
    category: str
    date: datetime
    createdAt: datetime
    updatedAt: datetime

    @computed_field
    @property
    def formattedAmount(self) -> str:
        return f"{self.amount:.2f}"

    @computed_field
    @property
    def formattedDate(self) -> str:
        return self.date.strftime("%Y-%m-%d")

    @classmethod
    def from_model(cls, tx: Transaction) -> "TransactionOut":
        return cls(
            id=tx.id,
            type=tx.type,
            amount=float(tx.amount),
            description=tx.description,
            category=tx.category,
            date=tx.date,
            createdAt=tx.created_at,
            updatedAt=tx.updated_at,
        )


class DeletedTransactionData(BaseModel):
    id: str


class TransactionResponse(ResponseEnvelope):
    data: TransactionOut


class TransactionListResponse(ResponseEnvelope):
    data: List[TransactionOut]


class TransactionDeleteResponse(ResponseEnvelope):
    data: DeletedTransactionData
