"""商品Schema"""
from typing import Optional, List, Dict, Any
from decimal import Decimal
from pydantic import BaseModel, Field
from datetime import datetime

from voltstock.models.product import MAX_QUANTITY


class ProductBase(BaseModel):
    """商品基础字段（不含 status，状态由库存推导）"""
    sku: str = Field(..., max_length=64, description="SKU")
    name: str = Field(..., max_length=200, description="品名")
    category_id: str = Field(..., description="分类ID")
    price: Decimal = Field(default=Decimal("0"), ge=0, lt=Decimal("10000000000"), description="售价")
    stock: int = Field(default=0, ge=-MAX_QUANTITY, le=MAX_QUANTITY, description="当前库存")
    min_stock: int = Field(default=0, ge=0, le=MAX_QUANTITY, description="最低库存")
    unit: str = Field(default="pcs", max_length=20, description="计量单位")
    is_active: bool = Field(default=True, description="是否启用")
    specifications: Dict[str, Any] = Field(default_factory=dict, description="规格值 {规格ID: 值}")


class ProductCreate(ProductBase):
    """创建商品"""
    pass


class ProductUpdate(BaseModel):
    """更新商品（只提交需要修改的字段）"""
    sku: Optional[str] = Field(None, max_length=64)
    name: Optional[str] = Field(None, max_length=200)
    category_id: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, lt=Decimal("10000000000"))
    stock: Optional[int] = Field(None, ge=-MAX_QUANTITY, le=MAX_QUANTITY)
    min_stock: Optional[int] = Field(None, ge=0, le=MAX_QUANTITY)
    unit: Optional[str] = Field(None, max_length=20)
    is_active: Optional[bool] = None
    specifications: Optional[Dict[str, Any]] = None


class ProductAttribute(BaseModel):
    """按分类当前规格定义对齐后的规格值"""
    spec_id: str
    name: str
    type: str
    value: Optional[Any] = None
    missing: bool = False


class ProductResponse(BaseModel):
    """商品响应"""
    id: str
    sku: str
    name: str
    category_id: Optional[str] = None
    category_name: str = ""
    price: Decimal
    stock: int
    min_stock: int
    unit: str
    status: str
    is_active: bool
    specifications: Dict[str, Any] = {}
    attributes: List[ProductAttribute] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProductSaveResponse(ProductResponse):
    """保存商品响应，附带被移除的过期规格值提示"""
    warnings: List[str] = []


class ProductListResponse(BaseModel):
    """商品列表响应"""
    data: List[ProductResponse]
    total: int
    page: int
    limit: int
    total_pages: int
