"""商品管理API"""

import math
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from voltstock.core.config import settings
from voltstock.core.context import Operator
from voltstock.core.deps import get_db, get_operator
from voltstock.models.product import Product, StockStatus
from voltstock.schemas.product import (
    ProductCreate, ProductUpdate, ProductResponse, ProductSaveResponse, ProductListResponse
)
from voltstock.services import product_catalog

router = APIRouter()


async def build_product_response(product: Product, db: AsyncSession) -> ProductResponse:
    """构建商品响应（含分类名称和对齐后的规格值）"""
    categories = await product_catalog.load_category_map(db, [product.category_id])
    return ProductResponse(**product_catalog.describe_product(product, categories))


@router.get("/", response_model=ProductListResponse)
async def list_products(
    *,
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    search: Optional[str] = Query(None, description="搜索品名/SKU"),
    status: Optional[str] = Query(None, description="库存状态"),
    category_id: Optional[str] = Query(None, description="分类ID"),
    is_active: Optional[bool] = Query(None, description="是否启用")) -> Any:
    """获取商品列表"""
    if status and status not in StockStatus.ALL:
        raise HTTPException(status_code=400, detail=f"不支持的库存状态：{status}")

    products, total = await product_catalog.list_products(
        db,
        search=search,
        status=status,
        category_id=category_id,
        is_active=is_active,
        page=page,
        limit=limit,
    )
    categories = await product_catalog.load_category_map(db, (p.category_id for p in products))

    return ProductListResponse(
        data=[ProductResponse(**product_catalog.describe_product(p, categories)) for p in products],
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit) if total else 0
    )


@router.post("/", response_model=ProductSaveResponse)
async def create_product(
    *,
    db: AsyncSession = Depends(get_db),
    operator: Operator = Depends(get_operator),
    product_in: ProductCreate) -> Any:
    """创建商品"""
    result = await product_catalog.save_product(db, product_in.model_dump(), operator)
    resp = await build_product_response(result.product, db)
    return ProductSaveResponse(**resp.model_dump(), warnings=result.warnings)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    *,
    db: AsyncSession = Depends(get_db),
    product_id: str) -> Any:
    """获取商品详情"""
    product = await product_catalog.get_product(db, product_id)
    return await build_product_response(product, db)


@router.put("/{product_id}", response_model=ProductSaveResponse)
async def update_product(
    *,
    db: AsyncSession = Depends(get_db),
    operator: Operator = Depends(get_operator),
    product_id: str,
    product_in: ProductUpdate) -> Any:
    """更新商品（规格值按分类当前规格定义重新校验）"""
    update_data = product_in.model_dump(exclude_unset=True)
    result = await product_catalog.save_product(db, update_data, operator, product_id=product_id)
    resp = await build_product_response(result.product, db)
    return ProductSaveResponse(**resp.model_dump(), warnings=result.warnings)


@router.delete("/{product_id}")
async def delete_product(
    *,
    db: AsyncSession = Depends(get_db),
    operator: Operator = Depends(get_operator),
    product_id: str) -> Any:
    """删除商品（有库存流水的商品改为停用）"""
    outcome = await product_catalog.delete_product(db, product_id, operator)
    if outcome == "deactivated":
        return {"message": "商品已有库存流水，已停用", "result": outcome}
    return {"message": "删除成功", "result": outcome}
