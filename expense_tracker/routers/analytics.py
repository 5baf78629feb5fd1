import calendar
from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query

from expense_tracker.db import get_transaction_store
from expense_tracker.models import TransactionType, utcnow
from expense_tracker.schemas.analytics import (
    AnalyticsData,
    AnalyticsResponse,
    BreakdownItem,
    CategoriesResponse,
    MonthlyTrend,
    SummaryData,
    SummaryResponse,
)
from expense_tracker.schemas.common import make_success_response
from expense_tracker.schemas.transactions import TransactionOut
from expense_tracker.services.transactions import CategoryTotal, TransactionStore, round_amount

router = APIRouter(
    prefix="/api/analytics",
    tags=["Analytics"],
)

TREND_WINDOW_MONTHS = 12
RECENT_TRANSACTIONS_LIMIT = 10


def _money(value: Decimal) -> float:
    return float(round_amount(value))


def months_ago(moment: datetime, months: int) -> datetime:
    """Same day and time ``months`` calendar months earlier, clamped to the month's end."""
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def _breakdown_items(rows: list[CategoryTotal]) -> list[BreakdownItem]:
    return [
        BreakdownItem(category=row.category, amount=_money(row.total), count=row.count)
        for row in rows
    ]


@router.get("/summary", response_model=SummaryResponse, response_model_exclude_none=True)
async def get_summary(store: TransactionStore = Depends(get_transaction_store)):
    summary = store.summary()
    return make_success_response(
        SummaryData(
            totalIncome=_money(summary.totalIncome),
            totalExpenses=_money(summary.totalExpenses),
            balance=_money(summary.balance),
            transactionCount=summary.transactionCount,
        )
    )


@router.get("/analytics", response_model=AnalyticsResponse, response_model_exclude_none=True)
async def get_analytics(store: TransactionStore = Depends(get_transaction_store)):
    # A. Category breakdowns
    expense_breakdown = store.category_breakdown(TransactionType.EXPENSE)
    income_breakdown = store.category_breakdown(TransactionType.INCOME)

    # B. Monthly trends over the trailing window
    since = months_ago(utcnow(), TREND_WINDOW_MONTHS)
    monthly_trends = {
        month_key: MonthlyTrend(
            income=_money(totals[TransactionType.INCOME.value]),
            expense=_money(totals[TransactionType.EXPENSE.value]),
        )
        for month_key, totals in store.monthly_trends(since).items()
    }

    # C. Latest transactions
    recent = store.recent(RECENT_TRANSACTIONS_LIMIT)

    return make_success_response(
        AnalyticsData(
            expenseBreakdown=_breakdown_items(expense_breakdown),
            incomeBreakdown=_breakdown_items(income_breakdown),
            monthlyTrends=monthly_trends,
            recentTransactions=[TransactionOut.from_model(tx) for tx in recent],
        )
    )


@router.get("/categories", response_model=CategoriesResponse, response_model_exclude_none=True)
async def get_categories(
    type: Optional[TransactionType] = Query(None),
    store: TransactionStore = Depends(get_transaction_store),
):
    return make_success_response(store.distinct_categories(type))
