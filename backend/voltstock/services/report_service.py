"""统计报表（只读）

只提供数据，CSV/PDF/图表的生成由前端负责。
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func, case
from sqlalchemy.ext.asyncio import AsyncSession

from voltstock.core.config import settings
from voltstock.core.exceptions import AttributeValidationError, FieldError
from voltstock.models.product import Product, StockStatus
from voltstock.models.stock_transaction import StockTransaction, TransactionType
from voltstock.services.product_catalog import load_category_map


class ReportType:
    LOW_STOCK = "LOW_STOCK"
    INVENTORY_VALUATION = "INVENTORY_VALUATION"

    ALL = (LOW_STOCK, INVENTORY_VALUATION)


def _money(value: Any) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal("0.01"))


async def _sales_between(db: AsyncSession, start: datetime, end: Optional[datetime] = None) -> Decimal:
    """区间内出库金额：出库数量 x 商品当前售价（流水不记录成交价）"""
    query = (
        select(func.coalesce(func.sum(StockTransaction.quantity * Product.price), 0))
        .join(Product, Product.id == StockTransaction.product_id)
        .where(StockTransaction.type == TransactionType.STOCK_OUT, StockTransaction.date >= start)
    )
    if end is not None:
        query = query.where(StockTransaction.date < end)
    return _money((await db.execute(query)).scalar())


async def get_dashboard(db: AsyncSession, now: Optional[datetime] = None) -> Dict[str, Any]:
    """仪表盘数据：启用商品数、低库存数、库存金额、今日/本月销售、销售趋势、最近流水

    时间按 UTC 计算，与流水的 date 字段一致。
    """
    now = now or datetime.utcnow()
    today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    month_start = today_start.replace(day=1)
    tomorrow = today_start + timedelta(days=1)

    # 销售趋势（最近N天，含当天，没有出库的日期金额为0）
    sales_trend = []
    for i in range(settings.SALES_TREND_DAYS - 1, -1, -1):
        day_start = today_start - timedelta(days=i)
        sales_trend.append({
            "date": day_start.strftime("%Y-%m-%d"),
            "amount": await _sales_between(db, day_start, day_start + timedelta(days=1)),
        })

    row = (await db.execute(
        select(
            func.count(Product.id),
            func.coalesce(func.sum(case((Product.status != StockStatus.IN_STOCK, 1), else_=0)), 0),
            func.coalesce(func.sum(case((Product.stock > 0, Product.stock * Product.price), else_=0)), 0),
        ).where(Product.is_active.is_(True))
    )).first()

    recent = (await db.execute(
        select(StockTransaction)
        .order_by(StockTransaction.date.desc())
        .limit(settings.RECENT_TRANSACTIONS_LIMIT)
    )).scalars().all()

    names = {}
    if recent:
        product_rows = await db.execute(
            select(Product.id, Product.name).where(Product.id.in_({t.product_id for t in recent}))
        )
        names = {pid: name for pid, name in product_rows}

    return {
        "total_products": int(row[0] or 0),
        "low_stock_count": int(row[1] or 0),
        "stock_value": _money(row[2]),
        "today_sales": await _sales_between(db, today_start, tomorrow),
        "monthly_sales": await _sales_between(db, month_start, tomorrow),
        "sales_trend": sales_trend,
        "recent_transactions": [
            {
                "id": t.id,
                "product_id": t.product_id,
                "product_name": names.get(t.product_id, ""),
                "type": t.type,
                "quantity": t.quantity,
                "quantity_before": t.quantity_before,
                "quantity_after": t.quantity_after,
                "date": t.date,
                "notes": t.notes,
                "user_name": t.user_name,
            }
            for t in recent
        ],
    }


async def get_report(db: AsyncSession, report_type: str) -> List[Dict[str, Any]]:
    """报表数据行

    LOW_STOCK:           启用商品中状态不是 IN_STOCK 的，按库存升序
    INVENTORY_VALUATION: 全部启用商品，附带 total_value = max(stock, 0) * price
    """
    if report_type not in ReportType.ALL:
        raise AttributeValidationError(
            [FieldError("type", "invalid", f"不支持的报表类型：{report_type}")]
        )

    query = select(Product).where(Product.is_active.is_(True))
    if report_type == ReportType.LOW_STOCK:
        query = query.where(Product.status != StockStatus.IN_STOCK).order_by(Product.stock, Product.sku)
    else:
        query = query.order_by(Product.sku)
    products = (await db.execute(query)).scalars().all()
    categories = await load_category_map(db, (p.category_id for p in products))

    rows = []
    for p in products:
        category = categories.get(p.category_id)
        row = {
            "sku": p.sku,
            "name": p.name,
            "category_name": category.name if category else "",
            "stock": p.stock,
            "min_stock": p.min_stock,
            "status": p.status,
            "price": p.price,
        }
        if report_type == ReportType.INVENTORY_VALUATION:
            row["total_value"] = (Decimal(max(p.stock, 0)) * Decimal(str(p.price or 0))).quantize(Decimal("0.01"))
        rows.append(row)
    return rows
