"""操作日志API"""

from typing import Any, Optional
from datetime import datetime, timedelta
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from voltstock.core.deps import get_db
from voltstock.models.audit_log import AuditLog
from voltstock.schemas.audit_log import AuditLogResponse, AuditLogListResponse

router = APIRouter()


def _parse_date(value: str, name: str) -> datetime:
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise HTTPException(status_code=400, detail=f"{name} 日期格式应为 YYYY-MM-DD")


def build_log_response(log: AuditLog) -> AuditLogResponse:
    """构建日志响应"""
    return AuditLogResponse(
        id=log.id,
        user_id=log.user_id,
        user_name=log.user_name,
        action=log.action,
        action_display=log.action_display,
        resource_type=log.resource_type,
        resource_type_display=log.resource_type_display,
        resource_id=log.resource_id,
        resource_name=log.resource_name,
        description=log.description,
        old_value=log.old_value,
        new_value=log.new_value,
        created_at=log.created_at
    )


@router.get("/", response_model=AuditLogListResponse)
async def list_logs(
    *,
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    action: Optional[str] = Query(None),
    resource_type: Optional[str] = Query(None),
    resource_id: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None)) -> Any:
    """获取操作日志列表"""
    conditions = []
    if action:
        conditions.append(AuditLog.action == action)
    if resource_type:
        conditions.append(AuditLog.resource_type == resource_type)
    if resource_id:
        conditions.append(AuditLog.resource_id == resource_id)
    if start_date:
        conditions.append(AuditLog.created_at >= _parse_date(start_date, "start_date"))
    if end_date:
        # 结束日期包含当天
        conditions.append(AuditLog.created_at < _parse_date(end_date, "end_date") + timedelta(days=1))

    query = select(AuditLog)
    count_query = select(func.count(AuditLog.id))
    if conditions:
        query = query.where(and_(*conditions))
        count_query = count_query.where(and_(*conditions))

    # 计算总数
    total = (await db.execute(count_query)).scalar() or 0

    # 分页查询
    query = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
    query = query.offset((page - 1) * limit).limit(limit)
    logs = (await db.execute(query)).scalars().all()

    return AuditLogListResponse(
        data=[build_log_response(log) for log in logs],
        total=total,
        page=page,
        limit=limit
    )
