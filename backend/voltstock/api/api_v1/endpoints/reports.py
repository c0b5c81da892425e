"""统计报表API"""

from typing import Any, List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from voltstock.core.deps import get_db
from voltstock.schemas.report import DashboardData, ReportRow
from voltstock.services import report_service

router = APIRouter()


@router.get("/dashboard", response_model=DashboardData)
async def get_dashboard(
    *,
    db: AsyncSession = Depends(get_db)) -> Any:
    """获取仪表盘数据"""
    return DashboardData(**await report_service.get_dashboard(db))


@router.get("/", response_model=List[ReportRow])
async def get_report(
    *,
    db: AsyncSession = Depends(get_db),
    type: str = Query(..., description="LOW_STOCK / INVENTORY_VALUATION")) -> Any:
    """获取报表数据"""
    rows = await report_service.get_report(db, type)
    return [ReportRow(**row) for row in rows]
