"""商品分类Schema"""

from typing import Optional, List, Union
from datetime import datetime
from pydantic import BaseModel, Field


class SpecDefinitionIn(BaseModel):
    """规格定义（保存分类时提交）

    options 可以是逗号分隔的原始字符串（如 "Red, Blue"），保存前统一拆分为数组。
    已有规格请带上原 id，以保证商品中按 id 保存的规格值仍然有效。
    """
    id: Optional[str] = Field(None, max_length=40, description="规格ID，新建时可不传")
    name: str = Field(..., description="规格名称")
    type: str = Field(..., description="TEXT / NUMBER / DROPDOWN")
    options: Optional[Union[str, List[str]]] = Field(None, description="下拉选项，逗号分隔字符串或数组")
    required: bool = Field(True, description="商品保存时是否必填")


class SpecDefinition(BaseModel):
    """规格定义（读取时 options 始终是已拆分的数组）"""
    id: str
    name: str
    type: str
    options: List[str] = []
    required: bool = True


class CategoryCreate(BaseModel):
    name: str = Field(..., max_length=100, description="分类名称")
    parent_id: Optional[str] = Field(None, description="父分类ID")
    specifications: List[SpecDefinitionIn] = Field(default_factory=list, description="规格定义")


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    parent_id: Optional[str] = None
    specifications: Optional[List[SpecDefinitionIn]] = None


class CategoryResponse(BaseModel):
    id: str
    name: str
    parent_id: Optional[str] = None
    specifications: List[SpecDefinition] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CategoryTreeNode(BaseModel):
    """分类树节点"""
    id: str
    name: str
    parent_id: Optional[str] = None
    level: int = 1
    specifications: List[SpecDefinition] = []
    children: List["CategoryTreeNode"] = []
