"""商品目录

- 列表：按名称/SKU 模糊搜索（不区分大小写），状态、分类精确筛选，条件之间为 AND，页码从 1 开始
- 保存：按分类 *当前* 的规格定义重新校验规格值；不再属于该分类的规格值会被移除并作为 warning 返回
- 库存状态由 (stock, min_stock) 推导，不接受外部传入
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy import select, func, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from voltstock.core.context import Operator
from voltstock.core.exceptions import AttributeValidationError, FieldError, MissingReferenceError
from voltstock.models.category import Category
from voltstock.models.product import MAX_QUANTITY, Product
from voltstock.models.stock_transaction import StockTransaction
from voltstock.services import audit_service
from voltstock.services.spec_schema import load_schemas, resolve_attributes, validate_and_normalize
from voltstock.services.stock_ledger import derive_status, product_locks

logger = logging.getLogger(__name__)

# 保存时可写入的字段（status 由库存推导，不在其中）
EDITABLE_FIELDS = ("sku", "name", "category_id", "price", "stock", "min_stock", "unit", "is_active", "specifications")

# DECIMAL(12, 2)
MAX_PRICE = Decimal("10000000000")

# SQLite 的 lower() 只转换 ASCII 字母，搜索词按同样的规则转换
_ASCII_LOWER = str.maketrans("ABCDEFGHIJKLMNOPQRSTUVWXYZ", "abcdefghijklmnopqrstuvwxyz")


@dataclass
class SaveResult:
    product: Product
    warnings: List[str] = field(default_factory=list)
    created: bool = False


def _snapshot(product: Product) -> Dict[str, Any]:
    return {
        "sku": product.sku,
        "name": product.name,
        "category_id": product.category_id,
        "price": str(product.price) if product.price is not None else None,
        "stock": product.stock,
        "min_stock": product.min_stock,
        "unit": product.unit,
        "status": product.status,
        "is_active": product.is_active,
        "specifications": dict(product.specifications or {}),
    }


async def list_products(
    db: AsyncSession,
    *,
    search: Optional[str] = None,
    status: Optional[str] = None,
    category_id: Optional[str] = None,
    is_active: Optional[bool] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[Product], int]:
    """获取商品列表，返回 (当前页商品, 筛选后总数)

    搜索只对 ASCII 字母忽略大小写；其他字符（如 É、Ä）按原样匹配。
    """
    conditions = []
    if search and search.strip():
        term = search.strip().translate(_ASCII_LOWER)
        conditions.append(or_(
            func.lower(Product.name).contains(term, autoescape=True),
            func.lower(Product.sku).contains(term, autoescape=True),
        ))
    if status:
        conditions.append(Product.status == status)
    if category_id:
        conditions.append(Product.category_id == category_id)
    if is_active is not None:
        conditions.append(Product.is_active == is_active)

    query = select(Product)
    if conditions:
        query = query.where(and_(*conditions))

    # 统计总数
    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    # 分页查询
    query = query.order_by(Product.created_at.desc(), Product.id)
    query = query.offset((page - 1) * limit).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all()), total


async def get_product(db: AsyncSession, product_id: str) -> Product:
    product = await db.get(Product, product_id)
    if not product:
        raise MissingReferenceError("商品", product_id, "商品不存在")
    return product


async def _sku_taken(db: AsyncSession, sku: str, exclude_id: Optional[str]) -> bool:
    conditions = [Product.sku == sku, Product.is_active.is_(True)]
    if exclude_id:
        conditions.append(Product.id != exclude_id)
    count = (await db.execute(select(func.count(Product.id)).where(and_(*conditions)))).scalar() or 0
    return count > 0


async def save_product(
    db: AsyncSession,
    data: Mapping[str, Any],
    operator: Operator,
    product_id: Optional[str] = None,
) -> SaveResult:
    """创建或更新商品

    更新时 data 只需包含要修改的字段，其余沿用原值；合并后的商品整体重新校验。
    所有字段错误一并收集后抛出 AttributeValidationError。
    """
    if product_id:
        lock = product_locks.get(product_id)
        async with lock:
            product = await get_product(db, product_id)
            return await _save(db, data, operator, product)
    return await _save(db, data, operator, None)


def _parse_int(raw: Any, field_name: str, label: str, minimum: int, errors: List[FieldError]) -> int:
    if raw is None:
        return 0
    if isinstance(raw, bool) or not isinstance(raw, int):
        errors.append(FieldError(field_name, "invalid", f"{label}必须是整数"))
        return 0
    if raw < minimum or raw > MAX_QUANTITY:
        errors.append(FieldError(field_name, "invalid", f"{label}必须在 {minimum} 到 {MAX_QUANTITY} 之间"))
        return 0
    return raw


def _parse_price(raw: Any, errors: List[FieldError]) -> Decimal:
    if raw is None:
        return Decimal("0")
    if isinstance(raw, bool):
        errors.append(FieldError("price", "invalid", "售价必须是数字"))
        return Decimal("0")
    try:
        price = Decimal(str(raw).strip())
    except InvalidOperation:
        errors.append(FieldError("price", "invalid", "售价必须是数字"))
        return Decimal("0")
    if not price.is_finite() or price < 0:
        errors.append(FieldError("price", "invalid", "售价必须是非负数"))
        return Decimal("0")
    if price >= MAX_PRICE:
        errors.append(FieldError("price", "invalid", f"售价不能超过 {MAX_PRICE - Decimal('0.01')}"))
        return Decimal("0")
    return price


async def _save(db: AsyncSession, data: Mapping[str, Any], operator: Operator, product: Optional[Product]) -> SaveResult:
    current: Dict[str, Any] = _snapshot(product) if product else {
        "sku": "", "name": "", "category_id": None, "price": Decimal("0"),
        "stock": 0, "min_stock": 0, "unit": "pcs", "is_active": True, "specifications": {},
    }
    merged = dict(current)
    merged.update({k: v for k, v in data.items() if k in EDITABLE_FIELDS})

    errors: List[FieldError] = []
    warnings: List[str] = []

    sku = str(merged.get("sku") or "").strip()
    name = str(merged.get("name") or "").strip()
    if not sku:
        errors.append(FieldError("sku", "required", "SKU不能为空"))
    if not name:
        errors.append(FieldError("name", "required", "品名不能为空"))

    stock = _parse_int(merged.get("stock"), "stock", "当前库存", -MAX_QUANTITY, errors)
    min_stock = _parse_int(merged.get("min_stock"), "min_stock", "最低库存", 0, errors)
    price = _parse_price(merged.get("price"), errors)
    is_active = bool(merged.get("is_active", True))

    if sku and is_active and await _sku_taken(db, sku, product.id if product else None):
        errors.append(FieldError("sku", "duplicate", f"SKU {sku} 已被其他启用的商品使用"))

    category_id = merged.get("category_id") or None
    category = await db.get(Category, category_id) if category_id else None
    specifications: Dict[str, Any] = {}
    if not category_id:
        errors.append(FieldError("category_id", "required", "请选择分类"))
    elif category is None:
        errors.append(FieldError("category_id", "not_found", "分类不存在"))
    else:
        try:
            validated = validate_and_normalize(load_schemas(category.specifications), merged.get("specifications"))
        except AttributeValidationError as e:
            errors.extend(e.errors)
        else:
            specifications = validated.values
            warnings.extend(
                f"规格 {key} 不属于分类「{category.name}」当前的规格定义，已移除"
                for key in validated.stale_keys
            )

    if errors:
        logger.info(f"商品保存被拒绝 sku={sku or '-'}: {[e.field for e in errors]}")
        raise AttributeValidationError(errors)

    values = {
        "sku": sku,
        "name": name,
        "category_id": category_id,
        "price": price,
        "stock": stock,
        "min_stock": min_stock,
        "unit": (merged.get("unit") or "pcs").strip() or "pcs",
        "is_active": is_active,
        "specifications": specifications,
        "status": derive_status(stock, min_stock),
    }

    created = product is None
    if created:
        product = Product(**values)
        db.add(product)
        await db.flush()
        audit_service.record(
            db, operator, "create", "product", product.id, product.name,
            description=f"创建商品 {sku}", new_value=_snapshot(product),
        )
    else:
        old = _snapshot(product)
        for key, value in values.items():
            setattr(product, key, value)
        audit_service.record(
            db, operator, "update", "product", product.id, product.name,
            description=f"更新商品 {sku}", old_value=old, new_value=_snapshot(product),
        )

    await db.commit()
    await db.refresh(product)
    for message in warnings:
        logger.warning(f"⚠️ {product.sku}: {message}")
    logger.info(f"✅ 商品已{'创建' if created else '更新'}: {product.sku} 状态={product.status}")
    return SaveResult(product=product, warnings=warnings, created=created)


async def delete_product(db: AsyncSession, product_id: str, operator: Operator) -> str:
    """删除商品

    已有库存流水的商品只停用（保留流水可追溯），返回 "deactivated"；否则删除，返回 "deleted"。
    """
    lock = product_locks.get(product_id)
    async with lock:
        product = await get_product(db, product_id)
        history = (await db.execute(
            select(func.count(StockTransaction.id)).where(StockTransaction.product_id == product_id)
        )).scalar() or 0

        if history > 0:
            product.is_active = False
            audit_service.record(
                db, operator, "deactivate", "product", product.id, product.name,
                description=f"商品 {product.sku} 有 {history} 条库存流水，已停用",
            )
            outcome = "deactivated"
        else:
            audit_service.record(
                db, operator, "delete", "product", product.id, product.name,
                description=f"删除商品 {product.sku}", old_value=_snapshot(product),
            )
            await db.delete(product)
            outcome = "deleted"

        await db.commit()
    logger.info(f"🗑️ 商品 {product_id} {outcome}")
    return outcome


async def load_category_map(db: AsyncSession, category_ids: Iterable[Optional[str]]) -> Dict[str, Category]:
    ids = {cid for cid in category_ids if cid}
    if not ids:
        return {}
    result = await db.execute(select(Category).where(Category.id.in_(ids)))
    return {c.id: c for c in result.scalars().all()}


def describe_product(product: Product, categories: Mapping[str, Category]) -> Dict[str, Any]:
    """构建商品展示数据

    分类不存在时 category_name 为空、不展示规格；
    规格值按分类当前的规格定义对齐，缺失的标记为 missing。
    """
    category = categories.get(product.category_id) if product.category_id else None
    schemas = load_schemas(category.specifications) if category else []
    return {
        "id": product.id,
        "sku": product.sku,
        "name": product.name,
        "category_id": product.category_id,
        "category_name": category.name if category else "",
        "price": product.price,
        "stock": product.stock,
        "min_stock": product.min_stock,
        "unit": product.unit,
        "status": product.status,
        "is_active": product.is_active,
        "specifications": dict(product.specifications or {}),
        "attributes": resolve_attributes(schemas, product.specifications),
        "created_at": product.created_at,
        "updated_at": product.updated_at,
    }
