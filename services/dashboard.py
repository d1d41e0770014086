"""
Dashboard statistics over the loan application table.

Each metric family has its own query function so it can be called and tested
on its own; get_dashboard_stats composes them. Grouped rows are turned into
result models by pure build_* functions that never touch the store.
Month buckets are UTC calendar months.
"""
from __future__ import annotations

import functools
import logging
from collections.abc import Iterable
from datetime import date, datetime
from typing import Any, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy import case, extract, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from models import LoanApplication, LoanStatus
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
from services.errors import InternalAggregationError
from utils.dates import ensure_utc, utcnow

logger = logging.getLogger(__name__)

DASHBOARD_MONTHS = 6
RECENT_LIMIT = 5

METRIC_FIELDS = ("loan_amount", "credit_score", "monthly_income")

_year = extract("year", LoanApplication.created_at)
_month = extract("month", LoanApplication.created_at)


def _count_status(status: LoanStatus):
    return func.sum(case((LoanApplication.status == status.value, 1), else_=0))


def _store_errors_as(message: str):
    """Re-raise store failures as InternalAggregationError(message)."""
    def decorator(fn):
        @functools.wraps(fn)
        async def wrapper(*args, **kwargs):
            try:
                return await fn(*args, **kwargs)
            except SQLAlchemyError as e:
                raise InternalAggregationError(message) from e
        return wrapper
    return decorator


# --- pure helpers ---------------------------------------------------------

def approval_rate(approved: int, total: int) -> float:
    """Percentage of approved applications; 0 when there are none."""
    if not total:
        return 0.0
    return approved / total * 100


def month_label(year: int, month: int) -> str:
    """Short month name and 4-digit year, e.g. 'Mar 2023'."""
    return date(int(year), int(month), 1).strftime("%b %Y")


def months_ago(now: datetime, months: int) -> datetime:
    return ensure_utc(now) - relativedelta(months=months)


def build_status_counts(rows: Iterable[tuple[str, int]]) -> StatusCounts:
    counts = StatusCounts()
    for status, count in rows:
        counts.total += count
        if status in (s.value for s in LoanStatus):
            setattr(counts, status, count)
    return counts


def build_financial_summary(row: Optional[tuple]) -> FinancialSummary:
    """row = (sum amount, avg amount, avg credit score, avg income); aggregates are NULL on an empty table."""
    if row is None:
        return FinancialSummary()
    total, avg_amount, avg_score, avg_income = row
    return FinancialSummary(
        total_loan_amount=float(total or 0),
        average_loan_amount=float(avg_amount or 0),
        average_credit_score=float(avg_score or 0),
        average_monthly_income=float(avg_income or 0),
    )


def build_type_distribution(rows: Iterable[tuple[str, int]]) -> dict[str, int]:
    return {loan_type: count for loan_type, count in rows}


def build_monthly_counts(rows: Iterable[tuple[int, int, int]]) -> list[MonthlyCount]:
    """rows = (year, month, count), already in chronological order."""
    return [MonthlyCount(month=month_label(y, m), count=count) for y, m, count in rows]


def build_monthly_stats(rows: Iterable[tuple]) -> list[MonthlyStats]:
    """rows = (year, month, applications, approved, rejected, pending, total amount)."""
    out = []
    for y, m, applications, approved, rejected, pending, total_amount in rows:
        out.append(MonthlyStats(
            month=month_label(y, m),
            applications=applications,
            approved=approved or 0,
            rejected=rejected or 0,
            pending=pending or 0,
            total_amount=float(total_amount or 0),
            approval_rate=approval_rate(approved or 0, applications),
        ))
    return out


def build_approval_trends(rows: Iterable[tuple[int, int, str, int]]) -> list[dict[str, Any]]:
    """
    rows = (year, month, status, count) in chronological order.
    One dict per month; only statuses seen that month get a key.
    """
    buckets: dict[tuple[int, int], dict[str, Any]] = {}
    for y, m, status, count in rows:
        key = (int(y), int(m))
        bucket = buckets.setdefault(key, {"month": month_label(*key)})
        bucket[status] = count
    return [buckets[k] for k in sorted(buckets)]


def build_loan_type_stats(rows: Iterable[tuple]) -> list[LoanTypeStats]:
    """rows = (loan type, count, total amount, avg amount, avg credit score, approved)."""
    out = [
        LoanTypeStats(
            loan_type=loan_type,
            count=count,
            total_amount=float(total or 0),
            average_amount=float(avg_amount or 0),
            average_credit_score=float(avg_score or 0),
            approval_rate=approval_rate(approved or 0, count),
        )
        for loan_type, count, total, avg_amount, avg_score, approved in rows
    ]
    out.sort(key=lambda s: (-s.count, s.loan_type))
    return out


def _summary_projection(app_row, field: str) -> dict[str, Any]:
    return {
        "id": app_row.id,
        "full_name": app_row.full_name,
        field: getattr(app_row, field),
        "loan_type": app_row.loan_type,
    }


def build_metric_stats(field: str, highest, lowest, average) -> MetricStats:
    """highest/lowest are rows with id, full_name, <field>, loan_type, or None on an empty table."""
    return MetricStats(
        highest=ExtremalRecord(
            value=getattr(highest, field) if highest is not None else 0,
            application=_summary_projection(highest, field) if highest is not None else None,
        ),
        lowest=ExtremalRecord(
            value=getattr(lowest, field) if lowest is not None else 0,
            application=_summary_projection(lowest, field) if lowest is not None else None,
        ),
        average=float(average or 0),
    )


# --- metric families ------------------------------------------------------

@_store_errors_as("Error retrieving status counts")
async def get_status_counts(session: AsyncSession) -> StatusCounts:
    result = await session.execute(
        select(LoanApplication.status, func.count()).group_by(LoanApplication.status)
    )
    return build_status_counts(result.all())


@_store_errors_as("Error retrieving financial summary")
async def get_financial_summary(session: AsyncSession) -> FinancialSummary:
    result = await session.execute(
        select(
            func.sum(LoanApplication.loan_amount),
            func.avg(LoanApplication.loan_amount),
            func.avg(LoanApplication.credit_score),
            func.avg(LoanApplication.monthly_income),
        )
    )
    return build_financial_summary(result.first())


@_store_errors_as("Error retrieving loan type distribution")
async def get_loan_type_distribution(session: AsyncSession) -> dict[str, int]:
    result = await session.execute(
        select(LoanApplication.loan_type, func.count()).group_by(LoanApplication.loan_type)
    )
    return build_type_distribution(result.all())


@_store_errors_as("Error retrieving monthly application counts")
async def get_monthly_application_counts(
    session: AsyncSession, months: int = DASHBOARD_MONTHS, now: Optional[datetime] = None
) -> list[MonthlyCount]:
    since = months_ago(now or utcnow(), months)
    result = await session.execute(
        select(_year, _month, func.count())
        .where(LoanApplication.created_at >= since)
        .group_by(_year, _month)
        .order_by(_year, _month)
    )
    return build_monthly_counts(result.all())


@_store_errors_as("Error retrieving recent applications")
async def get_recent_applications(session: AsyncSession, limit: int = RECENT_LIMIT) -> list[RecentApplication]:
    result = await session.execute(
        select(
            LoanApplication.id,
            LoanApplication.full_name,
            LoanApplication.loan_amount,
            LoanApplication.loan_type,
            LoanApplication.status,
            LoanApplication.created_at,
        )
        .order_by(LoanApplication.created_at.desc(), LoanApplication.id.desc())
        .limit(limit)
    )
    return [
        RecentApplication(
            id=row.id,
            full_name=row.full_name,
            loan_amount=row.loan_amount,
            loan_type=row.loan_type,
            status=row.status,
            created_at=ensure_utc(row.created_at),
        )
        for row in result.all()
    ]


# --- dashboard endpoints --------------------------------------------------

@_store_errors_as("Error retrieving dashboard statistics")
async def get_dashboard_stats(session: AsyncSession, now: Optional[datetime] = None) -> DashboardStats:
    counts = await get_status_counts(session)
    financial = await get_financial_summary(session)
    distribution = await get_loan_type_distribution(session)
    monthly = await get_monthly_application_counts(session, DASHBOARD_MONTHS, now=now)
    recent = await get_recent_applications(session, RECENT_LIMIT)

    return DashboardStats(
        total_applications=counts.total,
        pending_applications=counts.pending,
        approved_applications=counts.approved,
        rejected_applications=counts.rejected,
        total_loan_amount=financial.total_loan_amount,
        average_loan_amount=financial.average_loan_amount,
        approval_rate=approval_rate(counts.approved, counts.total),
        loan_type_distribution=distribution,
        monthly_applications=monthly,
        recent_applications=recent,
        average_credit_score=financial.average_credit_score,
        average_monthly_income=financial.average_monthly_income,
    )


@_store_errors_as("Error retrieving monthly statistics")
async def get_monthly_stats(
    session: AsyncSession, months: int = DASHBOARD_MONTHS, now: Optional[datetime] = None
) -> list[MonthlyStats]:
    since = months_ago(now or utcnow(), months)
    result = await session.execute(
        select(
            _year,
            _month,
            func.count(),
            _count_status(LoanStatus.APPROVED),
            _count_status(LoanStatus.REJECTED),
            _count_status(LoanStatus.PENDING),
            func.sum(LoanApplication.loan_amount),
        )
        .where(LoanApplication.created_at >= since)
        .group_by(_year, _month)
        .order_by(_year, _month)
    )
    return build_monthly_stats(result.all())


@_store_errors_as("Error retrieving approval trends")
async def get_approval_trends(
    session: AsyncSession,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> list[dict[str, Any]]:
    stmt = select(_year, _month, LoanApplication.status, func.count())
    if start_date is not None:
        stmt = stmt.where(LoanApplication.created_at >= ensure_utc(start_date))
    if end_date is not None:
        stmt = stmt.where(LoanApplication.created_at <= ensure_utc(end_date))
    result = await session.execute(
        stmt.group_by(_year, _month, LoanApplication.status).order_by(_year, _month)
    )
    return build_approval_trends(result.all())


@_store_errors_as("Error retrieving loan type statistics")
async def get_loan_type_stats(session: AsyncSession) -> list[LoanTypeStats]:
    result = await session.execute(
        select(
            LoanApplication.loan_type,
            func.count(),
            func.sum(LoanApplication.loan_amount),
            func.avg(LoanApplication.loan_amount),
            func.avg(LoanApplication.credit_score),
            _count_status(LoanStatus.APPROVED),
        ).group_by(LoanApplication.loan_type)
    )
    return build_loan_type_stats(result.all())


async def _metric_stats(session: AsyncSession, field: str) -> MetricStats:
    column = getattr(LoanApplication, field)
    projection = select(
        LoanApplication.id, LoanApplication.full_name, column, LoanApplication.loan_type
    )
    highest = (await session.execute(projection.order_by(column.desc()).limit(1))).first()
    lowest = (await session.execute(projection.order_by(column.asc()).limit(1))).first()
    average = (await session.execute(select(func.avg(column)))).scalar()
    return build_metric_stats(field, highest, lowest, average)


@_store_errors_as("Error retrieving top metrics")
async def get_top_metrics(session: AsyncSession) -> TopMetrics:
    stats = {field: await _metric_stats(session, field) for field in METRIC_FIELDS}
    return TopMetrics(**stats)
