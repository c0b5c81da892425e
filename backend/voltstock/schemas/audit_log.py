"""操作日志Schema"""
from typing import Optional, List, Any
from datetime import datetime
from pydantic import BaseModel


class AuditLogResponse(BaseModel):
    id: int
    user_id: Optional[int] = None
    user_name: str
    action: str
    action_display: str = ""
    resource_type: str
    resource_type_display: str = ""
    resource_id: Optional[str] = None
    resource_name: Optional[str] = None
    description: Optional[str] = None
    old_value: Optional[Any] = None
    new_value: Optional[Any] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AuditLogListResponse(BaseModel):
    data: List[AuditLogResponse]
    total: int
    page: int
    limit: int
