from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from services import dashboard as service
from utils.case import dict_keys_to_camel

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/stats")
async def dashboard_stats(db: AsyncSession = Depends(get_db)):
    stats = await service.get_dashboard_stats(db)
    return {"success": True, "data": dict_keys_to_camel(stats.model_dump())}


@router.get("/loan-types")
async def loan_type_stats(db: AsyncSession = Depends(get_db)):
    stats = await service.get_loan_type_stats(db)
    return {"success": True, "data": [dict_keys_to_camel(s.model_dump()) for s in stats]}


@router.get("/monthly")
async def monthly_stats(
    months: int = Query(6, ge=1, le=24, description="Trailing window in calendar months"),
    db: AsyncSession = Depends(get_db),
):
    stats = await service.get_monthly_stats(db, months)
    return {"success": True, "data": [dict_keys_to_camel(s.model_dump()) for s in stats]}


@router.get("/approval-trends")
async def approval_trends(
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_db),
):
    trends = await service.get_approval_trends(db, start_date, end_date)
    return {"success": True, "data": trends}


@router.get("/top-metrics")
async def top_metrics(db: AsyncSession = Depends(get_db)):
    metrics = await service.get_top_metrics(db)
    return {"success": True, "data": dict_keys_to_camel(metrics.model_dump())}
