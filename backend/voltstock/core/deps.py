"""依赖注入"""
from typing import AsyncGenerator, Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from voltstock.core.config import settings
from voltstock.core.context import Operator
from voltstock.db.session import SessionLocal
from voltstock.models.user import User


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    获取数据库会话依赖
    """
    async with SessionLocal() as session:
        yield session


async def get_operator(
    db: AsyncSession = Depends(get_db),
    x_user_id: Optional[int] = Header(None, description="当前操作人ID"),
) -> Operator:
    """解析当前操作人

    携带 X-User-Id 时必须是已启用的用户；未携带时使用系统默认操作人。
    认证由外部网关负责，这里只负责把操作人传给业务层。
    """
    if x_user_id is None:
        return Operator.system(settings.DEFAULT_OPERATOR_NAME)

    user = await db.get(User, x_user_id)
    if not user:
        raise HTTPException(status_code=401, detail="操作人不存在")
    if not user.active:
        raise HTTPException(status_code=403, detail="操作人已被禁用")
    return Operator(user_id=user.id, user_name=user.name)
