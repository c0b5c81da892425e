"""
操作日志模型 - 记录分类、商品、用户的增删改
用于审计追踪和问题排查（库存变动另有 StockTransaction 流水）
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, JSON

from voltstock.db.base import Base


class AuditLog(Base):
    """操作日志"""
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)

    # 操作人
    user_id = Column(Integer, nullable=True, index=True)
    user_name = Column(String(100), nullable=False, comment="操作人")

    # 操作类型 create / update / delete / deactivate
    action = Column(String(20), nullable=False, index=True, comment="操作类型")

    # 资源类型 category / product / user
    resource_type = Column(String(50), nullable=False, index=True, comment="资源类型")
    resource_id = Column(String(40), index=True, comment="资源ID")
    resource_name = Column(String(200), comment="资源名称")

    description = Column(String(500), comment="操作描述")

    old_value = Column(JSON, comment="修改前")
    new_value = Column(JSON, comment="修改后")

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f"<AuditLog {self.action} {self.resource_type}:{self.resource_id}>"

    @property
    def action_display(self) -> str:
        """操作类型显示名称"""
        action_map = {
            "create": "创建",
            "update": "更新",
            "delete": "删除",
            "deactivate": "停用",
        }
        return action_map.get(self.action, self.action)

    @property
    def resource_type_display(self) -> str:
        """资源类型显示名称"""
        type_map = {
            "category": "分类",
            "product": "商品",
            "user": "用户",
        }
        return type_map.get(self.resource_type, self.resource_type)
