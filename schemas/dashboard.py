from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class StatusCounts(BaseModel):
    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0


class FinancialSummary(BaseModel):
    total_loan_amount: float = 0
    average_loan_amount: float = 0
    average_credit_score: float = 0
    average_monthly_income: float = 0


class MonthlyCount(BaseModel):
    month: str
    count: int


class MonthlyStats(BaseModel):
    month: str
    applications: int
    approved: int
    rejected: int
    pending: int
    total_amount: float
    approval_rate: float


class LoanTypeStats(BaseModel):
    loan_type: str
    count: int
    total_amount: float
    average_amount: float
    average_credit_score: float
    approval_rate: float


class RecentApplication(BaseModel):
    id: str
    full_name: str
    loan_amount: float
    loan_type: str
    status: str
    created_at: Optional[datetime] = None


class ExtremalRecord(BaseModel):
    value: float = 0
    application: Optional[dict[str, Any]] = None


class MetricStats(BaseModel):
    highest: ExtremalRecord = Field(default_factory=ExtremalRecord)
    lowest: ExtremalRecord = Field(default_factory=ExtremalRecord)
    average: float = 0


class TopMetrics(BaseModel):
    loan_amount: MetricStats
    credit_score: MetricStats
    monthly_income: MetricStats


class DashboardStats(BaseModel):
    total_applications: int
    pending_applications: int
    approved_applications: int
    rejected_applications: int
    total_loan_amount: float
    average_loan_amount: float
    approval_rate: float
    loan_type_distribution: dict[str, int]
    monthly_applications: list[MonthlyCount]
    recent_applications: list[RecentApplication]
    average_credit_score: float
    average_monthly_income: float
