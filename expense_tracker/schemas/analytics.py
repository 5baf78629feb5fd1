from typing import Dict, List
from pydantic import BaseModel
from expense_tracker.schemas.common import ResponseEnvelope
from expense_tracker.schemas.transactions import TransactionOut

class SummaryData(BaseModel):
    totalIncome: float
    totalExpenses: float
    balance: float
    transactionCount: int

class BreakdownItem(BaseModel):
    category: str
    amount: float
    count: int

class MonthlyTrend(BaseModel):
    income: float = 0.0
    expense: float = 0.0

class AnalyticsData(BaseModel):
    expenseBreakdown: List[BreakdownItem]
    incomeBreakdown: List[BreakdownItem]
    monthlyTrends: Dict[str, MonthlyTrend]
    recentTransactions: List[TransactionOut]

class SummaryResponse(ResponseEnvelope):
    data: SummaryData

class AnalyticsResponse(ResponseEnvelope):
    data: AnalyticsData

class CategoriesResponse(ResponseEnvelope):
    data: List[str]
