"""Field rules for incoming transaction payloads.

Every rule runs independently so a single response reports all offending
fields. Create and update share ``validate_transaction_payload``.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, List, Mapping, Optional

from pydantic import BaseModel

from expense_tracker.models import TransactionType
from expense_tracker.schemas.transactions import TransactionIn

MIN_AMOUNT = Decimal("0.01")
# Numeric(18, 2) holds 16 integer digits
MAX_AMOUNT = Decimal("1e16")
DESCRIPTION_MAX_LENGTH = 255
CATEGORY_MAX_LENGTH = 50


class FieldError(BaseModel):
    field: str
    message: str


class ValidationResult(BaseModel):
    errors: List[FieldError] = []
    value: Optional[TransactionIn] = None

    @property
    def ok(self) -> bool:
        return not self.errors


def parse_iso_datetime(value: Any) -> datetime:
    """Parse an ISO-8601 date or date-time into a naive UTC datetime."""
    if isinstance(value, datetime):
        parsed = value
    else:
        if not isinstance(value, str):
            raise ValueError("not a string")
        text = value.strip()
        if text[-1:] in ("Z", "z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def is_date_only(value: str) -> bool:
    try:
        date.fromisoformat(value.strip())
    except ValueError:
        return False
    return True


def _check_type(value: Any) -> TransactionType:
    try:
        return TransactionType(value)
    except ValueError:
        raise ValueError("Type must be either income or expense")


def _check_amount(value: Any) -> Decimal:
    message = "Amount must be a positive number greater than 0"
    if value is None or isinstance(value, bool):
        raise ValueError(message)
    try:
        if isinstance(value, float):
            amount = Decimal(repr(value))
        elif isinstance(value, (int, str)):
            amount = Decimal(str(value).strip())
        else:
            raise ValueError(message)
    except InvalidOperation:
        raise ValueError(message)
    if not amount.is_finite() or amount < MIN_AMOUNT:
        raise ValueError(message)
    if amount >= MAX_AMOUNT:
        raise ValueError(f"Amount must be less than {MAX_AMOUNT:,.0f}")
    return amount


def _check_text(value: Any, max_length: int, message: str) -> str:
    if not isinstance(value, str):
        raise ValueError(message)
    text = value.strip()
    if not 1 <= len(text) <= max_length:
        raise ValueError(message)
    return text


def _check_description(value: Any) -> str:
    return _check_text(
        value,
        DESCRIPTION_MAX_LENGTH,
        f"Description must be between 1 and {DESCRIPTION_MAX_LENGTH} characters",
    )


def _check_category(value: Any) -> str:
    return _check_text(
        value,
        CATEGORY_MAX_LENGTH,
        f"Category must be between 1 and {CATEGORY_MAX_LENGTH} characters",
    )


def _check_date(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    try:
        return parse_iso_datetime(value)
    except (ValueError, OverflowError):
        raise ValueError("Date must be a valid ISO 8601 date")


RULES: List[tuple[str, Callable[[Any], Any]]] = [
    ("type", _check_type),
    ("amount", _check_amount),
    ("description", _check_description),
    ("category", _check_category),
    ("date", _check_date),
]


def validate_transaction_payload(payload: Mapping[str, Any]) -> ValidationResult:
    errors: List[FieldError] = []
    cleaned: dict[str, Any] = {}
    for field, rule in RULES:
        try:
            cleaned[field] = rule(payload.get(field))
        except ValueError as exc:
            errors.append(FieldError(field=field, message=str(exc)))

    if errors:
        return ValidationResult(errors=errors)
    return ValidationResult(value=TransactionIn(**cleaned))
