"""统计报表Schema"""
from typing import List, Optional
from decimal import Decimal
from datetime import datetime
from pydantic import BaseModel


class RecentTransaction(BaseModel):
    id: str
    product_id: str
    product_name: str = ""
    type: str
    quantity: int
    quantity_before: int
    quantity_after: int
    date: datetime
    notes: str = ""
    user_name: str


class SalesTrendPoint(BaseModel):
    date: str
    amount: Decimal


class DashboardData(BaseModel):
    """仪表盘数据"""
    total_products: int
    low_stock_count: int
    stock_value: Decimal
    today_sales: Decimal = Decimal("0")
    monthly_sales: Decimal = Decimal("0")
    sales_trend: List[SalesTrendPoint] = []
    recent_transactions: List[RecentTransaction] = []


class ReportRow(BaseModel):
    sku: str
    name: str
    category_name: str = ""
    stock: int
    min_stock: int
    status: str
    price: Decimal
    total_value: Optional[Decimal] = None
