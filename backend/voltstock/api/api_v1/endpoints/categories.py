"""商品分类API"""

from typing import Any, List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from voltstock.core.context import Operator
from voltstock.core.deps import get_db, get_operator
from voltstock.models.category import Category
from voltstock.schemas.category import (
    CategoryCreate, CategoryUpdate, CategoryResponse, CategoryTreeNode
)
from voltstock.services import category_service
from voltstock.services.category_tree import CategoryNode, build_tree

router = APIRouter()


def _build_response(cat: Category) -> CategoryResponse:
    """构建响应"""
    return CategoryResponse(
        id=cat.id,
        name=cat.name,
        parent_id=cat.parent_id,
        specifications=list(cat.specifications or []),
        created_at=cat.created_at,
        updated_at=cat.updated_at)


def _build_node(node: CategoryNode, level: int = 1) -> CategoryTreeNode:
    return CategoryTreeNode(
        id=node.id,
        name=node.name,
        parent_id=node.parent_id,
        level=level,
        specifications=node.specifications,
        children=[_build_node(child, level + 1) for child in node.children])


@router.get("/", response_model=List[CategoryResponse])
async def list_categories(
    *,
    db: AsyncSession = Depends(get_db)) -> Any:
    """获取分类列表（扁平，由调用方自行建树）"""
    categories = await category_service.list_categories(db)
    return [_build_response(c) for c in categories]


@router.get("/tree", response_model=List[CategoryTreeNode])
async def get_category_tree(
    *,
    db: AsyncSession = Depends(get_db)) -> Any:
    """获取分类树"""
    categories = await category_service.list_categories(db)
    return [_build_node(root) for root in build_tree(categories)]


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(
    *,
    db: AsyncSession = Depends(get_db),
    category_id: str) -> Any:
    """获取分类详情"""
    cat = await category_service.get_category(db, category_id)
    return _build_response(cat)


@router.post("/", response_model=CategoryResponse)
async def create_category(
    *,
    db: AsyncSession = Depends(get_db),
    operator: Operator = Depends(get_operator),
    category_in: CategoryCreate) -> Any:
    """创建分类"""
    cat = await category_service.save_category(db, category_in.model_dump(), operator)
    return _build_response(cat)


@router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(
    *,
    db: AsyncSession = Depends(get_db),
    operator: Operator = Depends(get_operator),
    category_id: str,
    category_in: CategoryUpdate) -> Any:
    """更新分类（提交 specifications 时整体替换本分类的规格定义）"""
    update_data = category_in.model_dump(exclude_unset=True)
    cat = await category_service.save_category(db, update_data, operator, category_id=category_id)
    return _build_response(cat)


@router.delete("/{category_id}")
async def delete_category(
    *,
    db: AsyncSession = Depends(get_db),
    operator: Operator = Depends(get_operator),
    category_id: str) -> Any:
    """删除分类"""
    await category_service.delete_category(db, category_id, operator)
    return {"message": "删除成功"}
