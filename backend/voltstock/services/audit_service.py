"""操作日志写入"""

from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from voltstock.core.context import Operator
from voltstock.models.audit_log import AuditLog


def record(
    db: AsyncSession,
    operator: Operator,
    action: str,
    resource_type: str,
    resource_id: Optional[Any],
    resource_name: Optional[str] = None,
    description: Optional[str] = None,
    old_value: Optional[dict] = None,
    new_value: Optional[dict] = None,
) -> AuditLog:
    """添加一条操作日志（随调用方的事务一起提交）"""
    log = AuditLog(
        user_id=operator.user_id,
        user_name=operator.user_name,
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        resource_name=resource_name,
        description=description,
        old_value=old_value,
        new_value=new_value,
    )
    db.add(log)
    return log
