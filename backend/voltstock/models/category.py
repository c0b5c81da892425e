"""商品分类模型 - 支持多层级树形结构"""

from datetime import datetime
from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.ext.mutable import MutableList

from voltstock.db.base import Base, generate_id


class Category(Base):
    """商品分类

    支持多层级树形结构（森林，可有多个根），如：
    - 电线电缆
      - 铜芯线
      - 网线
    - 开关插座
      - 墙壁开关

    children 不存储，每次读取时按 parent_id 分组重建。
    specifications 为该分类自己的规格定义数组（不向子分类继承），
    每项形如 {"id", "name", "type", "options", "required"}，始终是数组。
    """
    __tablename__ = "categories"

    id = Column(String(40), primary_key=True, default=lambda: generate_id("cat"))
    name = Column(String(100), nullable=False, comment="分类名称")
    parent_id = Column(String(40), nullable=True, index=True, comment="父分类ID")
    specifications = Column(MutableList.as_mutable(JSON), nullable=False, default=list, comment="规格定义")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Category {self.id}: {self.name}>"
