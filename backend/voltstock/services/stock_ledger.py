"""库存流水与库存状态

三种流水：
- STOCK_IN:   stock = stock + quantity
- STOCK_OUT:  stock = stock - quantity（默认允许变为负数，负数按缺货处理）
- ADJUSTMENT: stock = quantity（盘点，quantity 是目标值而不是增量）

每次成功的 apply 在同一个数据库事务里追加一条流水并更新商品的库存和状态，
要么都成功，要么都不生效。同一商品的并发调用串行执行，不同商品互不影响。
流水不是幂等的：同一笔入库提交两次会入库两次，重试由调用方负责。
"""

import asyncio
import logging
import weakref
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import select, update, func, and_
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from voltstock.core.config import settings
from voltstock.core.context import Operator
from voltstock.core.exceptions import TransactionError, TransportError
from voltstock.models.product import MAX_QUANTITY, Product, StockStatus
from voltstock.models.stock_transaction import StockTransaction, TransactionType

logger = logging.getLogger(__name__)


def derive_status(stock: int, min_stock: int) -> str:
    """由库存和最低库存推导库存状态"""
    if stock <= 0:
        return StockStatus.OUT_OF_STOCK
    if stock < min_stock:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


def compute_new_stock(transaction_type: str, current: int, quantity: int) -> int:
    """计算流水生效后的库存"""
    if transaction_type == TransactionType.STOCK_IN:
        new_stock = current + quantity
    elif transaction_type == TransactionType.STOCK_OUT:
        new_stock = current - quantity
    elif transaction_type == TransactionType.ADJUSTMENT:
        new_stock = quantity
    else:
        raise TransactionError(TransactionError.INVALID_TYPE, f"不支持的流水类型：{transaction_type}")
    if abs(new_stock) > MAX_QUANTITY:
        raise TransactionError(TransactionError.INVALID_QUANTITY, f"变动后的库存超出范围（最大 {MAX_QUANTITY}）")
    return new_stock


def check_request(transaction_type: str, quantity: int) -> None:
    """在改动任何数据之前校验流水请求

    入库/出库数量必须 >= 1；调整的目标数量可以为 0；数量不能超过 MAX_QUANTITY。
    """
    if transaction_type not in TransactionType.ALL:
        raise TransactionError(TransactionError.INVALID_TYPE, f"不支持的流水类型：{transaction_type}")
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise TransactionError(TransactionError.INVALID_QUANTITY, "数量必须是整数")
    if quantity > MAX_QUANTITY:
        raise TransactionError(TransactionError.INVALID_QUANTITY, f"数量不能超过 {MAX_QUANTITY}")
    minimum = 0 if transaction_type == TransactionType.ADJUSTMENT else 1
    if quantity < minimum:
        raise TransactionError(
            TransactionError.INVALID_QUANTITY,
            "调整后的数量不能为负数" if minimum == 0 else "数量必须大于0"
        )


class ProductLocks:
    """按商品ID分配的进程内锁

    没有协程持有时锁会被回收，字典不会无限增长。
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def get(self, product_id: str) -> asyncio.Lock:
        lock = self._locks.get(product_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[product_id] = lock
        return lock


product_locks = ProductLocks()


@dataclass
class LedgerResult:
    product: Product
    transaction: StockTransaction


async def apply(
    db: AsyncSession,
    product_id: str,
    transaction_type: str,
    quantity: int,
    operator: Operator,
    notes: Optional[str] = None,
) -> LedgerResult:
    """执行一笔库存流水

    Raises:
        TransactionError: 数量不合法、商品不存在/已停用、库存不足（禁止负库存时）、并发冲突
        TransportError: 数据库不可用
    """
    check_request(transaction_type, quantity)

    lock = product_locks.get(product_id)
    async with lock:
        try:
            result = await db.execute(
                select(Product)
                .where(Product.id == product_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            product = result.scalar_one_or_none()
            if not product:
                raise TransactionError(TransactionError.PRODUCT_NOT_FOUND, "商品不存在")
            if not product.is_active:
                raise TransactionError(TransactionError.PRODUCT_INACTIVE, "商品已停用，不能登记库存流水")

            old_stock = product.stock
            new_stock = compute_new_stock(transaction_type, old_stock, quantity)

            if new_stock < 0:
                if not settings.ALLOW_NEGATIVE_STOCK:
                    raise TransactionError(
                        TransactionError.INSUFFICIENT_STOCK,
                        f"库存不足：当前库存 {old_stock}，需要 {quantity}"
                    )
                logger.warning(f"⚠️ 商品 {product.sku} 出库后库存为负数：{old_stock} -> {new_stock}")

            new_status = derive_status(new_stock, product.min_stock)
            now = datetime.utcnow()

            # 以读取时的库存做比较更新，防止丢失更新
            updated = await db.execute(
                update(Product)
                .where(and_(Product.id == product_id, Product.stock == old_stock))
                .values(stock=new_stock, status=new_status, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if updated.rowcount != 1:
                raise TransactionError(TransactionError.CONFLICT, "库存已被其他操作修改，请刷新后重试")

            transaction = StockTransaction(
                product_id=product_id,
                type=transaction_type,
                quantity=quantity,
                quantity_before=old_stock,
                quantity_after=new_stock,
                notes=(notes or "").strip(),
                user_id=operator.user_id,
                user_name=operator.user_name,
                date=now,
            )
            db.add(transaction)
            await db.commit()
        except TransactionError:
            await db.rollback()
            raise
        except DBAPIError as e:
            await db.rollback()
            logger.error(f"❌ 库存流水写入失败: {e}")
            raise TransportError("数据存储不可用，库存未变动") from e
        except Exception:
            await db.rollback()
            raise

    await db.refresh(product)
    logger.info(
        f"📦 库存流水 {transaction_type} 商品={product.sku} 数量={quantity} "
        f"{old_stock}->{new_stock} 状态={new_status} 操作人={operator.user_name}"
    )
    return LedgerResult(product=product, transaction=transaction)


async def list_transactions(
    db: AsyncSession,
    *,
    product_id: Optional[str] = None,
    transaction_type: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[StockTransaction], int]:
    """查询库存流水（最新的在前）"""
    conditions = []
    if product_id:
        conditions.append(StockTransaction.product_id == product_id)
    if transaction_type:
        conditions.append(StockTransaction.type == transaction_type)

    count_query = select(func.count(StockTransaction.id))
    query = select(StockTransaction)
    if conditions:
        count_query = count_query.where(and_(*conditions))
        query = query.where(and_(*conditions))

    total = (await db.execute(count_query)).scalar() or 0

    query = query.order_by(StockTransaction.date.desc(), StockTransaction.id.desc())
    query = query.offset((page - 1) * limit).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all()), total
