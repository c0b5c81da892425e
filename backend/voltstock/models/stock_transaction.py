"""库存流水模型 - 只追加，创建后不再修改"""

from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from voltstock.db.base import Base, generate_id


class TransactionType:
    """流水类型"""
    STOCK_IN = "STOCK_IN"
    STOCK_OUT = "STOCK_OUT"
    ADJUSTMENT = "ADJUSTMENT"  # quantity 为调整后的目标数量，不是增量

    ALL = (STOCK_IN, STOCK_OUT, ADJUSTMENT)


class StockTransaction(Base):
    """库存流水"""
    __tablename__ = "stock_transactions"
    __table_args__ = (
        Index("ix_stock_transactions_product_date", "product_id", "date"),
    )

    id = Column(String(40), primary_key=True, default=lambda: generate_id("txn"))
    product_id = Column(String(40), ForeignKey("products.id"), nullable=False, index=True)
    type = Column(String(20), nullable=False, comment="流水类型")
    quantity = Column(Integer, nullable=False, comment="数量（调整时为目标值）")

    # 变动前后数量（用于追溯）
    quantity_before = Column(Integer, nullable=False, comment="变动前数量")
    quantity_after = Column(Integer, nullable=False, comment="变动后数量")

    notes = Column(String(500), nullable=False, default="", comment="备注")

    # 操作人（X-User-Id 为空时 user_id 为空，仅记录名称）
    user_id = Column(Integer, nullable=True, comment="操作人ID")
    user_name = Column(String(100), nullable=False, comment="操作人")
    date = Column(DateTime, nullable=False, default=datetime.utcnow, comment="发生时间")

    product = relationship("Product", foreign_keys=[product_id])

    def __repr__(self):
        return f"<StockTransaction {self.product_id}: {self.type} {self.quantity_before}->{self.quantity_after}>"

    @property
    def quantity_change(self) -> int:
        return self.quantity_after - self.quantity_before

    @property
    def type_display(self) -> str:
        """类型显示名称"""
        type_map = {
            TransactionType.STOCK_IN: "入库",
            TransactionType.STOCK_OUT: "出库",
            TransactionType.ADJUSTMENT: "调整",
        }
        return type_map.get(self.type, self.type)
