import asyncio

import pytest
from sqlalchemy import select, func
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from voltstock.core.config import settings
from voltstock.core.context import Operator
from voltstock.core.exceptions import TransactionError, TransportError
from voltstock.db.base import Base
from voltstock.models.product import MAX_QUANTITY, Product, StockStatus
from voltstock.models.stock_transaction import StockTransaction, TransactionType
from voltstock.services import category_service, product_catalog, stock_ledger
from voltstock.services.stock_ledger import check_request, compute_new_stock, derive_status


async def make_product(db, operator, stock=0, min_stock=0, sku="SW-6A", is_active=True):
    cat = await category_service.save_category(db, {"name": f"Switches {sku}"}, operator)
    result = await product_catalog.save_product(db, {
        "sku": sku,
        "name": f"Switch {sku}",
        "category_id": cat.id,
        "price": "45.00",
        "stock": stock,
        "min_stock": min_stock,
        "is_active": is_active,
    }, operator)
    return result.product


async def count_transactions(db, product_id):
    return (await db.execute(
        select(func.count(StockTransaction.id)).where(StockTransaction.product_id == product_id)
    )).scalar()


@pytest.mark.parametrize("stock,min_stock,expected", [
    (0, 0, StockStatus.OUT_OF_STOCK),
    (-3, 5, StockStatus.OUT_OF_STOCK),
    (1, 5, StockStatus.LOW_STOCK),
    (4, 5, StockStatus.LOW_STOCK),
    (5, 5, StockStatus.IN_STOCK),
    (1, 0, StockStatus.IN_STOCK),
])
def test_derive_status_boundaries(stock, min_stock, expected):
    assert derive_status(stock, min_stock) == expected


def test_compute_new_stock():
    assert compute_new_stock(TransactionType.STOCK_IN, 5, 3) == 8
    assert compute_new_stock(TransactionType.STOCK_OUT, 5, 7) == -2
    assert compute_new_stock(TransactionType.ADJUSTMENT, 5, 2) == 2


@pytest.mark.parametrize("txn_type,quantity", [
    (TransactionType.STOCK_IN, 0),
    (TransactionType.STOCK_OUT, -1),
    (TransactionType.ADJUSTMENT, -1),
    (TransactionType.STOCK_IN, 1.5),
    (TransactionType.STOCK_IN, True),
    (TransactionType.STOCK_IN, MAX_QUANTITY + 1),
    (TransactionType.ADJUSTMENT, 2 ** 63),
])
def test_check_request_rejects_bad_quantity(txn_type, quantity):
    with pytest.raises(TransactionError) as exc_info:
        check_request(txn_type, quantity)
    assert exc_info.value.code == TransactionError.INVALID_QUANTITY


def test_check_request_rejects_unknown_type():
    with pytest.raises(TransactionError) as exc_info:
        check_request("TRANSFER", 1)
    assert exc_info.value.code == TransactionError.INVALID_TYPE


async def test_stock_in_restores_status(db, operator):
    product = await make_product(db, operator, stock=5, min_stock=10)
    assert product.status == StockStatus.LOW_STOCK

    result = await stock_ledger.apply(db, product.id, TransactionType.STOCK_IN, 10, operator)

    assert result.product.stock == 15
    assert result.product.status == StockStatus.IN_STOCK
    txn = result.transaction
    assert (txn.quantity_before, txn.quantity_after, txn.quantity_change) == (5, 15, 10)
    assert txn.user_name == "tester"


async def test_adjustment_to_zero_is_out_of_stock(db, operator):
    product = await make_product(db, operator, stock=3, min_stock=5)

    result = await stock_ledger.apply(db, product.id, TransactionType.ADJUSTMENT, 0, operator, notes=" count ")

    assert result.product.stock == 0
    assert result.product.status == StockStatus.OUT_OF_STOCK
    assert result.transaction.quantity_change == -3
    assert result.transaction.notes == "count"


async def test_stock_in_twice_counts_twice(db, operator):
    product = await make_product(db, operator)

    await stock_ledger.apply(db, product.id, TransactionType.STOCK_IN, 4, operator)
    result = await stock_ledger.apply(db, product.id, TransactionType.STOCK_IN, 4, operator)

    assert result.product.stock == 8
    assert await count_transactions(db, product.id) == 2


async def test_stock_out_may_go_negative(db, operator):
    product = await make_product(db, operator, stock=2, min_stock=1)

    result = await stock_ledger.apply(db, product.id, TransactionType.STOCK_OUT, 5, operator)

    assert result.product.stock == -3
    assert result.product.status == StockStatus.OUT_OF_STOCK


async def test_stock_out_rejected_when_negative_stock_disabled(db, operator, monkeypatch):
    monkeypatch.setattr(settings, "ALLOW_NEGATIVE_STOCK", False)
    product = await make_product(db, operator, stock=2, min_stock=1)

    with pytest.raises(TransactionError) as exc_info:
        await stock_ledger.apply(db, product.id, TransactionType.STOCK_OUT, 5, operator)

    assert exc_info.value.code == TransactionError.INSUFFICIENT_STOCK
    await db.refresh(product)
    assert product.stock == 2
    assert await count_transactions(db, product.id) == 0


async def test_invalid_quantity_changes_nothing(db, operator):
    product = await make_product(db, operator, stock=7)

    with pytest.raises(TransactionError):
        await stock_ledger.apply(db, product.id, TransactionType.STOCK_OUT, 0, operator)

    await db.refresh(product)
    assert product.stock == 7
    assert await count_transactions(db, product.id) == 0


async def test_missing_and_inactive_products_are_rejected(db, operator):
    with pytest.raises(TransactionError) as exc_info:
        await stock_ledger.apply(db, "prd_missing", TransactionType.STOCK_IN, 1, operator)
    assert exc_info.value.code == TransactionError.PRODUCT_NOT_FOUND

    product = await make_product(db, operator, is_active=False)
    with pytest.raises(TransactionError) as exc_info:
        await stock_ledger.apply(db, product.id, TransactionType.STOCK_IN, 1, operator)
    assert exc_info.value.code == TransactionError.PRODUCT_INACTIVE


async def test_list_transactions_newest_first(db, operator):
    product = await make_product(db, operator)
    await stock_ledger.apply(db, product.id, TransactionType.STOCK_IN, 10, operator)
    await stock_ledger.apply(db, product.id, TransactionType.STOCK_OUT, 3, operator)

    transactions, total = await stock_ledger.list_transactions(db, product_id=product.id)
    assert total == 2
    assert [t.type for t in transactions] == [TransactionType.STOCK_OUT, TransactionType.STOCK_IN]

    outs, total = await stock_ledger.list_transactions(db, transaction_type=TransactionType.STOCK_OUT)
    assert total == 1
    assert outs[0].quantity == 3


async def test_concurrent_stock_out_is_serialized(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(bind=engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)
    operator = Operator(user_id=None, user_name="counter")

    async with factory() as db:
        product = await make_product(db, operator, stock=20, min_stock=5)

    async def sell_one():
        async with factory() as session:
            await stock_ledger.apply(session, product.id, TransactionType.STOCK_OUT, 1, operator)

    await asyncio.gather(*(sell_one() for _ in range(10)))

    async with factory() as db:
        stored = await db.get(Product, product.id)
        assert stored.stock == 10
        assert stored.status == StockStatus.IN_STOCK
        assert await count_transactions(db, product.id) == 10
        afters = (await db.execute(
            select(StockTransaction.quantity_after).where(StockTransaction.product_id == product.id)
        )).scalars().all()
        assert sorted(afters) == list(range(10, 20))

    await engine.dispose()


def test_compute_new_stock_rejects_out_of_range_result():
    with pytest.raises(TransactionError) as exc_info:
        compute_new_stock(TransactionType.STOCK_IN, MAX_QUANTITY - 1, 5)
    assert exc_info.value.code == TransactionError.INVALID_QUANTITY

    with pytest.raises(TransactionError):
        compute_new_stock(TransactionType.STOCK_OUT, -MAX_QUANTITY, 1)

    assert compute_new_stock(TransactionType.STOCK_IN, MAX_QUANTITY - 5, 5) == MAX_QUANTITY


async def test_huge_quantity_is_rejected_before_any_change(db, operator):
    product = await make_product(db, operator, stock=3)

    with pytest.raises(TransactionError) as exc_info:
        await stock_ledger.apply(db, product.id, TransactionType.STOCK_IN, 2 ** 63, operator)

    assert exc_info.value.code == TransactionError.INVALID_QUANTITY
    await db.refresh(product)
    assert product.stock == 3
    assert await count_transactions(db, product.id) == 0


async def test_stock_in_past_limit_is_rolled_back(db, operator):
    product = await make_product(db, operator, stock=MAX_QUANTITY - 1)

    with pytest.raises(TransactionError) as exc_info:
        await stock_ledger.apply(db, product.id, TransactionType.STOCK_IN, 5, operator)

    assert exc_info.value.code == TransactionError.INVALID_QUANTITY
    await db.refresh(product)
    assert product.stock == MAX_QUANTITY - 1
    assert await count_transactions(db, product.id) == 0


async def test_store_failure_at_commit_leaves_stock_and_ledger_untouched(db, operator, monkeypatch):
    product = await make_product(db, operator, stock=5, min_stock=10)

    async def failing_commit():
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "commit", failing_commit)
    with pytest.raises(TransportError):
        await stock_ledger.apply(db, product.id, TransactionType.STOCK_IN, 10, operator)
    monkeypatch.undo()

    await db.refresh(product)
    assert product.stock == 5
    assert product.status == StockStatus.LOW_STOCK
    assert await count_transactions(db, product.id) == 0

    # 存储恢复后同一请求可以正常执行
    result = await stock_ledger.apply(db, product.id, TransactionType.STOCK_IN, 10, operator)
    assert result.product.stock == 15
    assert await count_transactions(db, product.id) == 1
