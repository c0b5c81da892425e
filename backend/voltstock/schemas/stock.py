"""库存流水Schema"""
from typing import Optional, List
from pydantic import BaseModel, Field
from datetime import datetime

from voltstock.schemas.product import ProductResponse


class StockTransactionCreate(BaseModel):
    """登记库存流水"""
    product_id: str = Field(..., description="商品ID")
    type: str = Field(..., description="STOCK_IN / STOCK_OUT / ADJUSTMENT")
    quantity: int = Field(..., description="数量；ADJUSTMENT 时为调整后的目标数量")
    notes: Optional[str] = Field(None, max_length=500, description="备注")


class StockTransactionResponse(BaseModel):
    """库存流水响应"""
    id: str
    product_id: str
    product_name: str = ""
    type: str
    type_display: str = ""
    quantity: int
    quantity_before: int
    quantity_after: int
    quantity_change: int
    date: datetime
    notes: str = ""
    user_id: Optional[int] = None
    user_name: str

    class Config:
        from_attributes = True


class StockProcessResponse(BaseModel):
    """登记流水后的商品与流水"""
    product: ProductResponse
    transaction: StockTransactionResponse


class StockTransactionListResponse(BaseModel):
    data: List[StockTransactionResponse]
    total: int
    page: int
    limit: int
