"""分类树

分类以扁平列表存储（只有 parent_id），每次读取时重建树：
1. 按 id 建立索引，给每个节点挂一个空的 children 列表
2. 遍历节点，parent_id 存在于索引中的挂到父节点下，否则作为根节点

根节点和子节点都保持输入顺序，不重新排序。
parent_id 指向不存在的分类时，该分类作为根节点展示，不报错。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple


@dataclass
class CategoryNode:
    id: str
    name: str
    parent_id: Optional[str]
    specifications: List[Dict[str, Any]] = field(default_factory=list)
    children: List["CategoryNode"] = field(default_factory=list)


def _read(item: Any, key: str, default: Any = None) -> Any:
    if isinstance(item, Mapping):
        return item.get(key, default)
    return getattr(item, key, default)


def build_tree(flat_categories: Iterable[Any]) -> List[CategoryNode]:
    """由扁平分类列表构建分类森林，O(n)

    输入元素可以是 ORM 对象，也可以是 dict（键为 id / name / parent_id / specifications）。
    """
    nodes: Dict[str, CategoryNode] = {}
    ordered: List[CategoryNode] = []
    for item in flat_categories:
        node = CategoryNode(
            id=_read(item, "id"),
            name=_read(item, "name", ""),
            parent_id=_read(item, "parent_id"),
            specifications=list(_read(item, "specifications") or []),
        )
        nodes[node.id] = node
        ordered.append(node)

    roots: List[CategoryNode] = []
    for node in ordered:
        parent = nodes.get(node.parent_id) if node.parent_id else None
        if parent is not None and parent is not node:
            parent.children.append(node)
        else:
            roots.append(node)
    return roots


def iter_tree(forest: Sequence[CategoryNode]) -> Iterable[Tuple[CategoryNode, int]]:
    """深度优先遍历，返回 (节点, 层级)，根节点层级为 1"""
    stack = [(node, 1) for node in reversed(forest)]
    while stack:
        node, level = stack.pop()
        yield node, level
        stack.extend((child, level + 1) for child in reversed(node.children))


def flatten_tree(forest: Sequence[CategoryNode]) -> List[Tuple[str, Optional[str]]]:
    """把分类树还原为 (id, parent_id) 对"""
    return [(node.id, node.parent_id) for node, _ in iter_tree(forest)]


def collect_descendant_ids(flat_categories: Iterable[Any], category_id: str) -> Set[str]:
    """获取某分类的所有后代分类ID（不含自身）"""
    children_map: Dict[Optional[str], List[str]] = {}
    for item in flat_categories:
        children_map.setdefault(_read(item, "parent_id"), []).append(_read(item, "id"))

    result: Set[str] = set()
    pending = list(children_map.get(category_id, []))
    while pending:
        child_id = pending.pop()
        if child_id in result or child_id == category_id:
            continue
        result.add(child_id)
        pending.extend(children_map.get(child_id, []))
    return result


def would_create_cycle(flat_categories: Iterable[Any], category_id: str, new_parent_id: Optional[str]) -> bool:
    """把 category_id 的父分类改为 new_parent_id 是否会形成环"""
    if new_parent_id is None:
        return False
    if new_parent_id == category_id:
        return True
    return new_parent_id in collect_descendant_ids(flat_categories, category_id)
