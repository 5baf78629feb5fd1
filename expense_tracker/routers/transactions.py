import json
from datetime import datetime, timedelta
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request, status

from expense_tracker.core.errors import NotFoundError, ValidationFailedError
from expense_tracker.db import get_transaction_store
from expense_tracker.models import TransactionType, utcnow
from expense_tracker.schemas.common import Pagination, make_success_response
from expense_tracker.schemas.transactions import (
    DeletedTransactionData,
    TransactionDeleteResponse,
    TransactionIn,
    TransactionListResponse,
    TransactionOut,
    TransactionResponse,
)
from expense_tracker.services.transactions import TransactionFilters, TransactionStore
from expense_tracker.services.validation import (
    is_date_only,
    parse_iso_datetime,
    validate_transaction_payload,
)

router = APIRouter(
    prefix="/api/transactions",
    tags=["Transactions"],
)

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def read_payload(request: Request) -> dict[str, Any]:
    """Accept a JSON object or form fields as the request body."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        return dict(form)

    body = await request.body()
    if not body.strip():
        return {}
    try:
        payload = json.loads(body)
    except ValueError:
        raise ValidationFailedError(
            "Malformed JSON body",
            details=[{"field": "body", "message": "Request body must be valid JSON"}],
        )
    if not isinstance(payload, dict):
        raise ValidationFailedError(
            details=[{"field": "body", "message": "Request body must be a JSON object"}],
        )
    return payload


def validated_transaction(payload: dict[str, Any] = Depends(read_payload)) -> TransactionIn:
    result = validate_transaction_payload(payload)
    if not result.ok:
        raise ValidationFailedError(details=[e.model_dump() for e in result.errors])
    data = result.value
    if data.date is None:
        data = data.model_copy(update={"date": utcnow()})
    return data


def _parse_date_param(name: str, value: Optional[str], end_of_day: bool = False):
    if value is None or value == "":
        return None
    try:
        parsed = parse_iso_datetime(value)
    except (ValueError, OverflowError):
        raise ValidationFailedError(
            details=[{"field": name, "message": f"{name} must be a valid ISO 8601 date"}],
        )
    if end_of_day and is_date_only(value):
        # A bare date includes the whole day
        try:
            parsed = parsed + timedelta(days=1) - timedelta(microseconds=1)
        except OverflowError:
            parsed = datetime.max
    return parsed


@router.get("", response_model=TransactionListResponse, response_model_exclude_none=True)
async def list_transactions(
    type: Optional[TransactionType] = Query(None),
    category: Optional[str] = Query(None),
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    store: TransactionStore = Depends(get_transaction_store),
):
    filters = TransactionFilters(
        type=type,
        category=category.strip() if category else None,
        start_date=_parse_date_param("startDate", startDate),
        end_date=_parse_date_param("endDate", endDate, end_of_day=True),
    )
    transactions, total = store.list(filters, limit=limit, offset=offset)

    return make_success_response(
        [TransactionOut.from_model(tx) for tx in transactions],
        pagination=Pagination(
            total=total,
            limit=limit,
            offset=offset,
            hasMore=offset + limit < total,
        ),
    )


@router.post(
    "",
    response_model=TransactionResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_transaction(
    data: TransactionIn = Depends(validated_transaction),
    store: TransactionStore = Depends(get_transaction_store),
):
    tx = store.create(data)
    return make_success_response(
        TransactionOut.from_model(tx),
        message="Transaction created successfully",
    )


@router.get("/{transaction_id}", response_model=TransactionResponse, response_model_exclude_none=True)
async def get_transaction(
    transaction_id: str,
    store: TransactionStore = Depends(get_transaction_store),
):
    tx = store.find_by_id(transaction_id)
    if tx is None:
        raise NotFoundError()
    return make_success_response(TransactionOut.from_model(tx))


@router.put("/{transaction_id}", response_model=TransactionResponse, response_model_exclude_none=True)
async def update_transaction(
    transaction_id: str,
    data: TransactionIn = Depends(validated_transaction),
    store: TransactionStore = Depends(get_transaction_store),
):
    tx = store.update(transaction_id, data)
    if tx is None:
        raise NotFoundError()
    return make_success_response(
        TransactionOut.from_model(tx),
        message="Transaction updated successfully",
    )


@router.delete("/{transaction_id}", response_model=TransactionDeleteResponse, response_model_exclude_none=True)
async def delete_transaction(
    transaction_id: str,
    store: TransactionStore = Depends(get_transaction_store),
):
    if not store.delete(transaction_id):
        raise NotFoundError()
    return make_success_response(
        DeletedTransactionData(id=transaction_id),
        message="Transaction deleted successfully",
    )
