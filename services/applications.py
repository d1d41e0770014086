"""
Loan application lifecycle: creation-time auto-decisioning, guarded status
transitions, partial updates, deletion and filtered listing.
Every function takes the request's AsyncSession and only flushes; the
session owner commits or rolls back.
"""
from __future__ import annotations

import logging
import math
import re
import uuid
from typing import Any, Optional, Union

from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models import LoanApplication, LoanStatus
from schemas.application import (
    ApplicationCreate,
    ApplicationFilters,
    ApplicationUpdate,
    Pagination,
    normalize_email,
)
from services.errors import (
    DuplicateEmail,
    InvalidIdFormat,
    InvalidTransition,
    NotFound,
    ValidationFailed,
)
from utils.dates import ensure_utc, utcnow
from utils.validation import format_validation_errors

logger = logging.getLogger(__name__)

APPROVAL_THRESHOLD = 700
REJECTION_THRESHOLD = 600

_ID_RE = re.compile(r"^app-[0-9a-f]{12}$")

# (from, to) pairs that may never happen
FORBIDDEN_TRANSITIONS: dict[tuple[LoanStatus, LoanStatus], str] = {
    (LoanStatus.APPROVED, LoanStatus.PENDING): "Cannot change status from approved to pending",
    (LoanStatus.REJECTED, LoanStatus.APPROVED): "Cannot directly approve a rejected application",
}


def new_application_id() -> str:
    return f"app-{uuid.uuid4().hex[:12]}"


def is_valid_application_id(application_id: str) -> bool:
    return bool(application_id) and _ID_RE.match(application_id) is not None


def decide_initial_status(credit_score: int) -> LoanStatus:
    """Auto-decision applied once, at creation."""
    if credit_score >= APPROVAL_THRESHOLD:
        return LoanStatus.APPROVED
    if credit_score < REJECTION_THRESHOLD:
        return LoanStatus.REJECTED
    return LoanStatus.PENDING


def validate_status_transition(current: LoanStatus, target: LoanStatus) -> None:
    message = FORBIDDEN_TRANSITIONS.get((LoanStatus(current), LoanStatus(target)))
    if message:
        raise InvalidTransition(message)


def _ensure_valid_id(application_id: str) -> None:
    if not is_valid_application_id(application_id):
        raise InvalidIdFormat()


async def _email_in_use(session: AsyncSession, email: str, exclude_id: Optional[str] = None) -> bool:
    stmt = select(LoanApplication.id).where(LoanApplication.email == email)
    if exclude_id is not None:
        stmt = stmt.where(LoanApplication.id != exclude_id)
    result = await session.execute(stmt.limit(1))
    return result.scalar_one_or_none() is not None


async def _flush_checking_email(session: AsyncSession) -> None:
    """Flush; a unique-email violation from the store becomes DuplicateEmail."""
    try:
        await session.flush()
    except IntegrityError as e:
        await session.rollback()
        if "email" in str(e.orig).lower():
            raise DuplicateEmail() from e
        raise


async def create_application(session: AsyncSession, data: ApplicationCreate) -> LoanApplication:
    if await _email_in_use(session, data.email):
        raise DuplicateEmail()

    status = decide_initial_status(data.credit_score)
    now = utcnow()
    app = LoanApplication(
        id=new_application_id(),
        status=status.value,
        created_at=now,
        updated_at=now,
        **data.model_dump(by_alias=False),
    )
    session.add(app)
    await _flush_checking_email(session)
    logger.info("Created application %s: credit score %d -> %s", app.id, app.credit_score, app.status)
    return app


async def get_application(session: AsyncSession, application_id: str) -> LoanApplication:
    _ensure_valid_id(application_id)
    result = await session.execute(select(LoanApplication).where(LoanApplication.id == application_id))
    app = result.scalar_one_or_none()
    if not app:
        raise NotFound()
    return app


async def update_application_status(
    session: AsyncSession, application_id: str, status: Union[LoanStatus, str]
) -> LoanApplication:
    app = await get_application(session, application_id)
    current = LoanStatus(app.status)
    target = LoanStatus(status)
    validate_status_transition(current, target)

    app.status = target.value
    app.updated_at = utcnow()
    await session.flush()
    logger.info("Application %s status %s -> %s", app.id, current.value, target.value)
    return app


async def update_application(
    session: AsyncSession, application_id: str, data: Union[ApplicationUpdate, dict[str, Any]]
) -> LoanApplication:
    _ensure_valid_id(application_id)
    if isinstance(data, ApplicationUpdate):
        update = data
    else:
        try:
            update = ApplicationUpdate.model_validate(data)
        except ValidationError as e:
            raise ValidationFailed(format_validation_errors(e.errors())) from e

    app = await get_application(session, application_id)
    fields = update.model_dump(exclude_unset=True)
    if not fields:
        return app

    if "email" in fields and fields["email"] != app.email:
        if await _email_in_use(session, fields["email"], exclude_id=app.id):
            raise DuplicateEmail()

    for name, value in fields.items():
        setattr(app, name, value)
    app.updated_at = utcnow()
    await _flush_checking_email(session)
    logger.info("Updated application %s fields: %s", app.id, ", ".join(sorted(fields)))
    return app


async def delete_application(session: AsyncSession, application_id: str) -> None:
    app = await get_application(session, application_id)
    await session.delete(app)
    await session.flush()
    logger.info("Deleted application %s", application_id)


def _filter_conditions(filters: ApplicationFilters) -> list:
    conditions = []
    if filters.status is not None:
        conditions.append(LoanApplication.status == LoanStatus(filters.status).value)
    if filters.loan_type is not None:
        conditions.append(LoanApplication.loan_type == filters.loan_type.value)
    if filters.date_from is not None:
        conditions.append(LoanApplication.created_at >= ensure_utc(filters.date_from))
    if filters.date_to is not None:
        conditions.append(LoanApplication.created_at <= ensure_utc(filters.date_to))
    if filters.credit_score_min is not None:
        conditions.append(LoanApplication.credit_score >= filters.credit_score_min)
    if filters.credit_score_max is not None:
        conditions.append(LoanApplication.credit_score <= filters.credit_score_max)
    if filters.loan_amount_min is not None:
        conditions.append(LoanApplication.loan_amount >= filters.loan_amount_min)
    if filters.loan_amount_max is not None:
        conditions.append(LoanApplication.loan_amount <= filters.loan_amount_max)
    return conditions


async def list_applications(
    session: AsyncSession,
    filters: Optional[ApplicationFilters] = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[LoanApplication], Pagination]:
    """Newest first; page is 1-indexed."""
    if page < 1 or limit < 1:
        raise ValidationFailed({"page" if page < 1 else "limit": "Must be a positive integer"})
    conditions = _filter_conditions(filters or ApplicationFilters())

    result = await session.execute(
        select(LoanApplication)
        .where(*conditions)
        .order_by(LoanApplication.created_at.desc(), LoanApplication.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    items = list(result.scalars().all())

    count_result = await session.execute(
        select(func.count()).select_from(LoanApplication).where(*conditions)
    )
    total_count = count_result.scalar_one()

    pagination = Pagination(
        current_page=page,
        total_pages=math.ceil(total_count / limit),
        total_count=total_count,
        limit=limit,
    )
    return items, pagination


async def get_applications_by_email(session: AsyncSession, email: str) -> list[LoanApplication]:
    result = await session.execute(
        select(LoanApplication)
        .where(LoanApplication.email == normalize_email(email))
        .order_by(LoanApplication.created_at.desc())
    )
    return list(result.scalars().all())


async def get_recent_applications(session: AsyncSession, limit: int = 5) -> list[LoanApplication]:
    result = await session.execute(
        select(LoanApplication).order_by(LoanApplication.created_at.desc(), LoanApplication.id.desc()).limit(limit)
    )
    return list(result.scalars().all())
