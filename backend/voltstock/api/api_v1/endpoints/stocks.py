"""库存流水API"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from voltstock.core.context import Operator
from voltstock.core.deps import get_db, get_operator
from voltstock.models.product import Product
from voltstock.models.stock_transaction import StockTransaction
from voltstock.schemas.product import ProductResponse
from voltstock.schemas.stock import (
    StockTransactionCreate, StockTransactionResponse,
    StockTransactionListResponse, StockProcessResponse
)
from voltstock.services import stock_ledger, product_catalog

router = APIRouter()


def build_transaction_response(txn: StockTransaction, product_name: str = "") -> StockTransactionResponse:
    """构建库存流水响应"""
    return StockTransactionResponse(
        id=txn.id,
        product_id=txn.product_id,
        product_name=product_name,
        type=txn.type,
        type_display=txn.type_display,
        quantity=txn.quantity,
        quantity_before=txn.quantity_before,
        quantity_after=txn.quantity_after,
        quantity_change=txn.quantity_change,
        date=txn.date,
        notes=txn.notes or "",
        user_id=txn.user_id,
        user_name=txn.user_name)


@router.post("/transactions", response_model=StockProcessResponse)
async def process_stock(
    *,
    db: AsyncSession = Depends(get_db),
    operator: Operator = Depends(get_operator),
    txn_in: StockTransactionCreate) -> Any:
    """登记库存流水（入库 / 出库 / 盘点调整）"""
    result = await stock_ledger.apply(
        db,
        txn_in.product_id,
        txn_in.type,
        txn_in.quantity,
        operator,
        notes=txn_in.notes,
    )
    categories = await product_catalog.load_category_map(db, [result.product.category_id])
    return StockProcessResponse(
        product=ProductResponse(**product_catalog.describe_product(result.product, categories)),
        transaction=build_transaction_response(result.transaction, result.product.name),
    )


@router.get("/transactions", response_model=StockTransactionListResponse)
async def list_transactions(
    *,
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    product_id: Optional[str] = Query(None),
    type: Optional[str] = Query(None, description="STOCK_IN / STOCK_OUT / ADJUSTMENT")) -> Any:
    """获取库存流水（最新的在前）"""
    transactions, total = await stock_ledger.list_transactions(
        db, product_id=product_id, transaction_type=type, page=page, limit=limit
    )

    names: Dict[str, str] = {}
    if transactions:
        rows = await db.execute(
            select(Product.id, Product.name).where(Product.id.in_({t.product_id for t in transactions}))
        )
        names = {pid: name for pid, name in rows}

    return StockTransactionListResponse(
        data=[build_transaction_response(t, names.get(t.product_id, "")) for t in transactions],
        total=total,
        page=page,
        limit=limit
    )
