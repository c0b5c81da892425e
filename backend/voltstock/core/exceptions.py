"""业务异常

核心服务只抛出这里定义的异常，由 main.py 中注册的处理器统一转换为 HTTP 响应。
"""

from dataclasses import dataclass, asdict
from typing import List, Optional


@dataclass(frozen=True)
class FieldError:
    """单个字段的校验错误"""
    field: str
    code: str
    message: str

    def to_dict(self) -> dict:
        return asdict(self)


class CatalogError(Exception):
    """业务异常基类"""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AttributeValidationError(CatalogError):
    """字段校验失败（可恢复，调用方修正后重新提交）

    一次性收集所有字段错误，而不是遇到第一个就返回。
    """
    status_code = 422

    def __init__(self, errors: List[FieldError], message: str = "数据校验失败"):
        super().__init__(message)
        self.errors = list(errors)

    @property
    def fields(self) -> List[str]:
        return [e.field for e in self.errors]

    def __str__(self) -> str:
        details = "; ".join(f"{e.field}: {e.message}" for e in self.errors)
        return f"{self.message}（{details}）" if details else self.message


class MissingReferenceError(CatalogError):
    """引用的分类/规格/商品不存在

    写操作中抛出；读操作中改为按“缺失值”展示，不抛出。
    """
    status_code = 404

    def __init__(self, resource_type: str, resource_id: Optional[str], message: Optional[str] = None):
        super().__init__(message or f"{resource_type} {resource_id} 不存在")
        self.resource_type = resource_type
        self.resource_id = resource_id


class TransactionError(CatalogError):
    """库存交易被拒绝，任何数据都未改动"""
    INVALID_QUANTITY = "INVALID_QUANTITY"
    INVALID_TYPE = "INVALID_TYPE"
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    PRODUCT_INACTIVE = "PRODUCT_INACTIVE"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    CONFLICT = "CONFLICT"

    _STATUS = {
        PRODUCT_NOT_FOUND: 404,
        CONFLICT: 409,
        INSUFFICIENT_STOCK: 409,
    }

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code

    @property
    def status_code(self) -> int:
        return self._STATUS.get(self.code, 400)


class TransportError(CatalogError):
    """数据存储不可达或返回了异常数据，原样上抛，不自动重试"""
    status_code = 503


class ResourceInUseError(CatalogError):
    """资源仍被引用（如分类下有子分类或商品），不自动级联删除"""
    status_code = 409
