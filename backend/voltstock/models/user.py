from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime

from voltstock.db.base import Base


class UserRole:
    """用户角色"""
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    STAFF = "STAFF"

    ALL = (ADMIN, MANAGER, STAFF)


class User(Base):
    """系统用户

    只用于标识操作人（库存流水、操作日志），认证不在本系统范围内。
    """
    __tablename__ = "sys_user"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, comment="姓名")
    email = Column(String(200), unique=True, index=True, nullable=False, comment="邮箱")
    role = Column(String(20), nullable=False, default=UserRole.STAFF, comment="角色")
    active = Column(Boolean, nullable=False, default=True, comment="是否启用")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<User {self.id}: {self.name} ({self.role})>"
