# models包初始化文件

from voltstock.models.user import User, UserRole
from voltstock.models.category import Category
from voltstock.models.product import Product, StockStatus
from voltstock.models.stock_transaction import StockTransaction, TransactionType
from voltstock.models.audit_log import AuditLog

__all__ = [
    "User",
    "UserRole",
    "Category",
    "Product",
    "StockStatus",
    "StockTransaction",
    "TransactionType",
    "AuditLog",
]
