"""分类管理（含分类自己的规格定义）"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from voltstock.core.context import Operator
from voltstock.core.exceptions import (
    AttributeValidationError, FieldError, MissingReferenceError, ResourceInUseError
)
from voltstock.models.category import Category
from voltstock.models.product import Product
from voltstock.services import audit_service
from voltstock.services.category_tree import would_create_cycle
from voltstock.services.spec_schema import SpecSchema, load_schemas, normalize_specifications

logger = logging.getLogger(__name__)


def _snapshot(cat: Category) -> Dict[str, Any]:
    return {
        "name": cat.name,
        "parent_id": cat.parent_id,
        "specifications": list(cat.specifications or []),
    }


async def list_categories(db: AsyncSession) -> List[Category]:
    """获取全部分类（扁平列表，按创建顺序）"""
    result = await db.execute(select(Category).order_by(Category.created_at, Category.id))
    return list(result.scalars().all())


async def get_category(db: AsyncSession, category_id: str) -> Category:
    cat = await db.get(Category, category_id)
    if not cat:
        raise MissingReferenceError("分类", category_id, "分类不存在")
    return cat


async def get_schemas(db: AsyncSession, category_id: Optional[str]) -> Optional[List[SpecSchema]]:
    """获取分类当前的规格定义，分类不存在时返回 None"""
    if not category_id:
        return None
    cat = await db.get(Category, category_id)
    if not cat:
        return None
    return load_schemas(cat.specifications)


async def save_category(
    db: AsyncSession,
    data: Mapping[str, Any],
    operator: Operator,
    category_id: Optional[str] = None,
) -> Category:
    """创建或更新分类

    data: name, parent_id, specifications（options 可为逗号分隔字符串）
    规格定义整体替换，只作用于本分类，不影响子分类。
    """
    cat = None
    if category_id:
        cat = await get_category(db, category_id)

    errors: List[FieldError] = []
    all_categories = await list_categories(db)
    existing_ids = {c.id for c in all_categories}

    name = (data.get("name") if "name" in data else (cat.name if cat else None)) or ""
    name = name.strip()
    if not name:
        errors.append(FieldError("name", "required", "分类名称不能为空"))
    elif len(name) > 100:
        errors.append(FieldError("name", "too_long", "分类名称不能超过100个字符"))

    parent_id = data.get("parent_id") if "parent_id" in data else (cat.parent_id if cat else None)
    parent_id = parent_id or None
    if parent_id is not None:
        if parent_id not in existing_ids:
            errors.append(FieldError("parent_id", "not_found", "父分类不存在"))
        elif category_id and would_create_cycle(all_categories, category_id, parent_id):
            errors.append(FieldError("parent_id", "cycle", "不能把分类移动到自身或其子分类下"))

    # 检查名称唯一性（同级别内）
    if name and any(
        c.name == name and c.parent_id == parent_id and c.id != category_id
        for c in all_categories
    ):
        errors.append(FieldError("name", "duplicate", "同级别下已存在同名分类"))

    if "specifications" in data or cat is None:
        try:
            schemas = normalize_specifications(data.get("specifications") or [])
        except AttributeValidationError as e:
            errors.extend(e.errors)
            schemas = []
        specifications = [s.to_dict() for s in schemas]
    else:
        specifications = list(cat.specifications or [])

    if errors:
        logger.info(f"分类保存被拒绝: {[e.field for e in errors]}")
        raise AttributeValidationError(errors)

    if cat is None:
        cat = Category(name=name, parent_id=parent_id, specifications=specifications)
        db.add(cat)
        await db.flush()
        audit_service.record(
            db, operator, "create", "category", cat.id, cat.name,
            description=f"创建分类 {cat.name}", new_value=_snapshot(cat),
        )
    else:
        old = _snapshot(cat)
        cat.name = name
        cat.parent_id = parent_id
        cat.specifications = specifications
        audit_service.record(
            db, operator, "update", "category", cat.id, cat.name,
            description=f"更新分类 {cat.name}", old_value=old, new_value=_snapshot(cat),
        )

    await db.commit()
    await db.refresh(cat)
    logger.info(f"✅ 分类已保存: {cat.name} ({cat.id})，规格 {len(cat.specifications)} 项")
    return cat


async def delete_category(db: AsyncSession, category_id: str, operator: Operator) -> None:
    """删除分类；有子分类或商品引用时拒绝，不做级联删除"""
    cat = await get_category(db, category_id)

    children_count = (await db.execute(
        select(func.count(Category.id)).where(Category.parent_id == category_id)
    )).scalar() or 0
    if children_count > 0:
        raise ResourceInUseError("该分类下有子分类，无法删除")

    products_count = (await db.execute(
        select(func.count(Product.id)).where(Product.category_id == category_id)
    )).scalar() or 0
    if products_count > 0:
        raise ResourceInUseError(f"该分类下有 {products_count} 个商品，无法删除")

    audit_service.record(
        db, operator, "delete", "category", cat.id, cat.name,
        description=f"删除分类 {cat.name}", old_value=_snapshot(cat),
    )
    await db.delete(cat)
    await db.commit()
    logger.info(f"🗑️ 分类已删除: {cat.name} ({category_id})")
