"""用户管理API

只维护用户资料和启用状态，用于标识库存流水和操作日志的操作人。
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from voltstock.core.context import Operator
from voltstock.core.deps import get_db, get_operator
from voltstock.models.user import User
from voltstock.schemas.user import UserCreate, UserUpdate, UserResponse, UserListResponse
from voltstock.services import audit_service

router = APIRouter()


def _snapshot(user: User) -> dict:
    return {"name": user.name, "email": user.email, "role": user.role, "active": user.active}


async def _email_taken(db: AsyncSession, email: str, exclude_id: int = None) -> bool:
    query = select(func.count(User.id)).where(func.lower(User.email) == email.lower())
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    return ((await db.execute(query)).scalar() or 0) > 0


@router.get("/", response_model=UserListResponse)
async def list_users(
    *,
    db: AsyncSession = Depends(get_db)) -> Any:
    """获取用户列表"""
    result = await db.execute(select(User).order_by(User.id))
    users = result.scalars().all()
    return UserListResponse(
        data=[UserResponse.model_validate(u) for u in users],
        total=len(users)
    )


@router.post("/", response_model=UserResponse)
async def create_user(
    *,
    db: AsyncSession = Depends(get_db),
    operator: Operator = Depends(get_operator),
    user_in: UserCreate) -> Any:
    """创建用户"""
    if await _email_taken(db, user_in.email):
        raise HTTPException(status_code=400, detail="该邮箱已被使用")

    user = User(**user_in.model_dump())
    db.add(user)
    await db.flush()
    audit_service.record(
        db, operator, "create", "user", user.id, user.name,
        description=f"创建用户 {user.name}", new_value=_snapshot(user),
    )
    await db.commit()
    await db.refresh(user)
    return UserResponse.model_validate(user)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    *,
    db: AsyncSession = Depends(get_db),
    operator: Operator = Depends(get_operator),
    user_id: int,
    user_in: UserUpdate) -> Any:
    """更新用户（含启用/禁用）"""
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="用户不存在")

    update_data = user_in.model_dump(exclude_unset=True)
    if update_data.get("email") and await _email_taken(db, update_data["email"], exclude_id=user_id):
        raise HTTPException(status_code=400, detail="该邮箱已被使用")

    old = _snapshot(user)
    for field, value in update_data.items():
        if value is not None:
            setattr(user, field, value)

    audit_service.record(
        db, operator, "update", "user", user.id, user.name,
        description=f"更新用户 {user.name}", old_value=old, new_value=_snapshot(user),
    )
    await db.commit()
    await db.refresh(user)
    return UserResponse.model_validate(user)
