from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models import LoanApplication, LoanStatus, LoanType
from schemas.application import ApplicationCreate, ApplicationFilters, StatusUpdate
from services import applications as service
from utils.case import dict_keys_to_camel
from utils.dates import ensure_utc

router = APIRouter(prefix="/api/applications", tags=["applications"])


def _app_to_response(app: LoanApplication) -> dict[str, Any]:
    """Serialize application to dict with camelCase for frontend."""
    return {
        "id": app.id,
        "fullName": app.full_name,
        "email": app.email,
        "phone": app.phone,
        "address": app.address,
        "loanAmount": app.loan_amount,
        "loanType": app.loan_type,
        "loanPurpose": app.loan_purpose,
        "employmentStatus": app.employment_status,
        "monthlyIncome": app.monthly_income,
        "creditScore": app.credit_score,
        "status": app.status,
        "documents": app.documents or [],
        "existingLoans": dict_keys_to_camel(app.existing_loans) if app.existing_loans else [],
        "createdAt": ensure_utc(app.created_at).isoformat() if app.created_at else None,
        "updatedAt": ensure_utc(app.updated_at).isoformat() if app.updated_at else None,
    }


@router.post("", status_code=201)
async def create_application(body: ApplicationCreate, db: AsyncSession = Depends(get_db)):
    app = await service.create_application(db, body)
    return {"success": True, "data": _app_to_response(app)}


@router.get("")
async def list_applications(
    status: Optional[LoanStatus] = Query(None),
    loan_type: Optional[LoanType] = Query(None, alias="loanType"),
    date_from: Optional[datetime] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(None, alias="dateTo"),
    credit_score_min: Optional[int] = Query(None, alias="creditScoreMin", ge=300, le=850),
    credit_score_max: Optional[int] = Query(None, alias="creditScoreMax", ge=300, le=850),
    loan_amount_min: Optional[float] = Query(None, alias="loanAmountMin", ge=0),
    loan_amount_max: Optional[float] = Query(None, alias="loanAmountMax", ge=0),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    filters = ApplicationFilters(
        status=status,
        loan_type=loan_type,
        date_from=date_from,
        date_to=date_to,
        credit_score_min=credit_score_min,
        credit_score_max=credit_score_max,
        loan_amount_min=loan_amount_min,
        loan_amount_max=loan_amount_max,
    )
    items, pagination = await service.list_applications(db, filters, page, limit)
    return {
        "success": True,
        "count": len(items),
        "totalCount": pagination.total_count,
        "pagination": dict_keys_to_camel(pagination.model_dump()),
        "data": [_app_to_response(a) for a in items],
    }


@router.get("/recent")
async def recent_applications(limit: int = Query(5, ge=1, le=50), db: AsyncSession = Depends(get_db)):
    apps = await service.get_recent_applications(db, limit)
    return {"success": True, "data": [_app_to_response(a) for a in apps]}


@router.get("/by-email")
async def applications_by_email(email: str = Query(..., min_length=3), db: AsyncSession = Depends(get_db)):
    apps = await service.get_applications_by_email(db, email)
    return {"success": True, "data": [_app_to_response(a) for a in apps]}


@router.get("/{application_id}")
async def get_application(application_id: str, db: AsyncSession = Depends(get_db)):
    app = await service.get_application(db, application_id)
    return {"success": True, "data": _app_to_response(app)}


@router.patch("/{application_id}")
async def update_application(
    application_id: str, body: dict[str, Any] = Body(...), db: AsyncSession = Depends(get_db)
):
    app = await service.update_application(db, application_id, body)
    return {"success": True, "data": _app_to_response(app)}


@router.patch("/{application_id}/status")
async def update_application_status(
    application_id: str, body: StatusUpdate, db: AsyncSession = Depends(get_db)
):
    app = await service.update_application_status(db, application_id, body.status)
    return {"success": True, "data": _app_to_response(app)}


@router.delete("/{application_id}")
async def delete_application(application_id: str, db: AsyncSession = Depends(get_db)):
    await service.delete_application(db, application_id)
    return {"success": True, "message": "Application deleted successfully"}
