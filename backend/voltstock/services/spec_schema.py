"""规格定义与规格值校验

每个分类为自己的商品定义一组带类型的规格（文本 / 数字 / 下拉），
商品保存时按分类 *当前* 的规格定义校验并规范化规格值：
- TEXT:     去掉首尾空白后非空
- NUMBER:   完整解析为有限数字，按 float 存储
- DROPDOWN: 与 options 中某一项完全相等（区分大小写，不做 trim）

下拉选项在保存分类时由逗号分隔的字符串拆分一次，读取时不再拆分。
"""

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from voltstock.core.exceptions import AttributeValidationError, FieldError
from voltstock.db.base import generate_id


class SpecType:
    """规格类型"""
    TEXT = "TEXT"
    NUMBER = "NUMBER"
    DROPDOWN = "DROPDOWN"

    ALL = (TEXT, NUMBER, DROPDOWN)


@dataclass
class SpecSchema:
    """单个规格定义，归属于某一个分类

    id 一经生成不再变化，规格改名或改类型后，商品中按 id 保存的值仍可寻址。
    """
    id: str
    name: str
    type: str
    options: List[str] = field(default_factory=list)
    required: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SpecSchema":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            type=data.get("type", SpecType.TEXT),
            options=list(data.get("options") or []),
            required=data.get("required", True),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "options": list(self.options),
            "required": self.required,
        }


# ===== 规格值（按类型区分）=====

@dataclass(frozen=True)
class TextValue:
    value: str
    type = SpecType.TEXT


@dataclass(frozen=True)
class NumberValue:
    value: float
    type = SpecType.NUMBER


@dataclass(frozen=True)
class ChoiceValue:
    value: str
    type = SpecType.DROPDOWN


SpecValue = Union[TextValue, NumberValue, ChoiceValue]


@dataclass
class ValidatedAttributes:
    """校验结果

    values:     按规格定义顺序排列的 {规格ID: 值}，用于持久化
    typed:      同样的键，值为带类型的 SpecValue
    stale_keys: 输入中不属于当前规格定义的键（已丢弃）
    """
    values: Dict[str, Any] = field(default_factory=dict)
    typed: Dict[str, SpecValue] = field(default_factory=dict)
    stale_keys: List[str] = field(default_factory=list)


_NUMBER_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def new_spec_id() -> str:
    return generate_id("spec")


def parse_options(raw: Union[str, Iterable[Any], None]) -> List[str]:
    """规范化下拉选项

    字符串按逗号拆分；每项去掉首尾空白，丢弃空项，重复项只保留第一次出现。
    " Red, Blue ,Blue" -> ["Red", "Blue"]
    """
    if raw is None:
        return []
    pieces = raw.split(",") if isinstance(raw, str) else raw
    options: List[str] = []
    for piece in pieces:
        if piece is None:
            continue
        item = str(piece).strip()
        if item and item not in options:
            options.append(item)
    return options


def define_spec(
    existing: Sequence[SpecSchema],
    *,
    name: Optional[str],
    type: Optional[str],
    options: Union[str, Iterable[Any], None] = None,
    required: bool = True,
    spec_id: Optional[str] = None,
) -> SpecSchema:
    """在一个分类的规格列表中定义（或重新定义）一个规格

    spec_id 为空时生成新的ID；不为空时保留原ID（编辑已有规格）。
    校验失败抛出 AttributeValidationError，字段为 name / type / options。
    """
    errors: List[FieldError] = []

    clean_name = (name or "").strip()
    if not clean_name:
        errors.append(FieldError("name", "required", "规格名称不能为空"))
    elif len(clean_name) > 100:
        errors.append(FieldError("name", "too_long", "规格名称不能超过100个字符"))
    elif any(s.name.strip().lower() == clean_name.lower() and s.id != spec_id for s in existing):
        errors.append(FieldError("name", "duplicate", f"该分类下已存在同名规格：{clean_name}"))

    if type not in SpecType.ALL:
        errors.append(FieldError("type", "invalid", f"不支持的规格类型：{type}"))

    clean_options: List[str] = []
    if type == SpecType.DROPDOWN:
        clean_options = parse_options(options)
        if not clean_options:
            errors.append(FieldError("options", "required", "下拉类型的规格至少需要一个选项"))

    if errors:
        raise AttributeValidationError(errors, message="规格定义无效")

    existing_ids = {s.id for s in existing}
    new_id = spec_id
    if not new_id:
        new_id = new_spec_id()
        while new_id in existing_ids:
            new_id = new_spec_id()

    return SpecSchema(
        id=new_id,
        name=clean_name,
        type=type,
        options=clean_options,
        required=bool(required),
    )


def normalize_specifications(raw_specs: Optional[Iterable[Mapping[str, Any]]]) -> List[SpecSchema]:
    """规范化分类保存时提交的整组规格定义

    options 可以是逗号分隔的原始字符串，也可以是数组。
    所有规格的错误一并收集，字段名形如 specifications[1].options。
    """
    schemas: List[SpecSchema] = []
    errors: List[FieldError] = []
    seen_ids = set()

    for idx, raw in enumerate(raw_specs or []):
        prefix = f"specifications[{idx}]"
        spec_id = raw.get("id") or None
        if spec_id is not None and spec_id in seen_ids:
            errors.append(FieldError(f"{prefix}.id", "duplicate", f"规格ID重复：{spec_id}"))
            continue
        try:
            schema = define_spec(
                schemas,
                name=raw.get("name"),
                type=raw.get("type"),
                options=raw.get("options"),
                required=raw.get("required", True),
                spec_id=spec_id,
            )
        except AttributeValidationError as e:
            errors.extend(FieldError(f"{prefix}.{err.field}", err.code, err.message) for err in e.errors)
            continue
        seen_ids.add(schema.id)
        schemas.append(schema)

    if errors:
        raise AttributeValidationError(errors, message="规格定义无效")
    return schemas


def _is_blank(raw: Any) -> bool:
    return raw is None or (isinstance(raw, str) and not raw.strip())


def parse_value(schema: SpecSchema, raw: Any, field_name: Optional[str] = None) -> Union[SpecValue, FieldError, None]:
    """按规格类型解析单个值

    返回带类型的值；不合法时返回 FieldError；非必填且为空时返回 None。
    """
    field_name = field_name or schema.id

    if _is_blank(raw):
        if schema.required:
            return FieldError(field_name, "required", f"{schema.name} 不能为空")
        return None

    if schema.type == SpecType.TEXT:
        if isinstance(raw, bool) or not isinstance(raw, (str, int, float)):
            return FieldError(field_name, "invalid_text", f"{schema.name} 必须是文本")
        return TextValue(str(raw).strip())

    if schema.type == SpecType.NUMBER:
        if isinstance(raw, bool):
            return FieldError(field_name, "invalid_number", f"{schema.name} 必须是数字")
        if isinstance(raw, (int, float)):
            number = float(raw)
        elif isinstance(raw, str) and _NUMBER_RE.fullmatch(raw.strip()):
            number = float(raw.strip())
        else:
            return FieldError(field_name, "invalid_number", f"{schema.name} 必须是数字")
        if not math.isfinite(number):
            return FieldError(field_name, "invalid_number", f"{schema.name} 必须是有限数字")
        return NumberValue(number)

    if schema.type == SpecType.DROPDOWN:
        if isinstance(raw, str) and raw in schema.options:
            return ChoiceValue(raw)
        return FieldError(
            field_name, "invalid_choice",
            f"{schema.name} 必须是以下选项之一：{', '.join(schema.options)}"
        )

    return FieldError(field_name, "unknown_type", f"{schema.name} 的规格类型未知：{schema.type}")


def validate_and_normalize(
    schemas: Sequence[SpecSchema],
    raw_values: Optional[Mapping[str, Any]],
    field_prefix: str = "specifications",
) -> ValidatedAttributes:
    """按分类当前的规格定义校验商品规格值

    收集全部字段错误后再抛出 AttributeValidationError。
    不属于当前规格定义的键不算错误，放入 stale_keys 由调用方决定如何提示。
    """
    raw_values = raw_values or {}
    result = ValidatedAttributes()
    errors: List[FieldError] = []

    for schema in schemas:
        field_name = f"{field_prefix}.{schema.id}" if field_prefix else schema.id
        parsed = parse_value(schema, raw_values.get(schema.id), field_name)
        if isinstance(parsed, FieldError):
            errors.append(parsed)
        elif parsed is not None:
            result.typed[schema.id] = parsed
            result.values[schema.id] = parsed.value

    known = {s.id for s in schemas}
    result.stale_keys = [key for key in raw_values if key not in known]

    if errors:
        raise AttributeValidationError(errors)
    return result


def resolve_attributes(schemas: Sequence[SpecSchema], stored: Optional[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """读取时把商品规格值与当前规格定义对齐（用于展示）

    规格定义中没有存储值的，标记为 missing；存储值对应的规格已被删除的，不展示。
    """
    stored = stored or {}
    attributes = []
    for schema in schemas:
        value = stored.get(schema.id)
        attributes.append({
            "spec_id": schema.id,
            "name": schema.name,
            "type": schema.type,
            "value": value,
            "missing": _is_blank(value),
        })
    return attributes


def load_schemas(raw_specs: Optional[Iterable[Mapping[str, Any]]]) -> List[SpecSchema]:
    """从分类中持久化的规格数组加载规格定义"""
    return [SpecSchema.from_dict(item) for item in (raw_specs or [])]
