from schemas.application import (
    ApplicationCreate,
    ApplicationFilters,
    ApplicationUpdate,
    ExistingLoanSchema,
    Pagination,
    StatusUpdate,
)
from schemas.dashboard import (
    DashboardStats,
    ExtremalRecord,
    FinancialSummary,
    LoanTypeStats,
    MetricStats,
    MonthlyCount,
    MonthlyStats,
    RecentApplication,
    StatusCounts,
    TopMetrics,
)

__all__ = [
    "ApplicationCreate",
    "ApplicationFilters",
    "ApplicationUpdate",
    "ExistingLoanSchema",
    "Pagination",
    "StatusUpdate",
    "DashboardStats",
    "ExtremalRecord",
    "FinancialSummary",
    "LoanTypeStats",
    "MetricStats",
    "MonthlyCount",
    "MonthlyStats",
    "RecentApplication",
    "StatusCounts",
    "TopMetrics",
]
