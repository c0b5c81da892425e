from datetime import datetime
from typing import Optional, List, Literal

from pydantic import BaseModel, EmailStr, Field

RoleName = Literal["ADMIN", "MANAGER", "STAFF"]


# 共享属性
class UserBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    role: RoleName = "STAFF"
    active: bool = True


# 创建用户时的属性
class UserCreate(UserBase):
    pass


# 更新用户时的属性
class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    role: Optional[RoleName] = None
    active: Optional[bool] = None


class UserResponse(UserBase):
    id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    data: List[UserResponse]
    total: int
