"""
商品模型
库存数量为冗余字段，由库存流水事务性更新（不通过回放流水计算）
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, String, Integer, Boolean, DateTime, DECIMAL, JSON
from sqlalchemy.ext.mutable import MutableDict

from voltstock.db.base import Base, generate_id


# 库存和数量的上限（32位有符号整数）
MAX_QUANTITY = 2 ** 31 - 1


class StockStatus:
    """库存状态，由 (stock, min_stock) 推导，不能直接设置"""
    IN_STOCK = "IN_STOCK"
    LOW_STOCK = "LOW_STOCK"
    OUT_OF_STOCK = "OUT_OF_STOCK"

    ALL = (IN_STOCK, LOW_STOCK, OUT_OF_STOCK)


class Product(Base):
    """商品

    specifications 为扁平的 {规格ID: 值} 映射，键必须属于所属分类当前的规格定义。
    """
    __tablename__ = "products"

    id = Column(String(40), primary_key=True, default=lambda: generate_id("prd"))
    sku = Column(String(64), nullable=False, index=True, comment="SKU")
    name = Column(String(200), nullable=False, index=True, comment="品名")
    category_id = Column(String(40), nullable=True, index=True, comment="分类ID")

    price = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"), comment="售价")
    stock = Column(Integer, nullable=False, default=0, comment="当前库存")
    min_stock = Column(Integer, nullable=False, default=0, comment="最低库存")
    unit = Column(String(20), nullable=False, default="pcs", comment="计量单位")
    status = Column(String(20), nullable=False, default=StockStatus.OUT_OF_STOCK, index=True, comment="库存状态")
    is_active = Column(Boolean, nullable=False, default=True, comment="是否启用")

    specifications = Column(MutableDict.as_mutable(JSON), nullable=False, default=dict, comment="规格值")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Product {self.sku}: {self.name} stock={self.stock}>"
