"""V1 API 路由聚合"""
from fastapi import APIRouter

from voltstock.api.api_v1.endpoints import (
    categories, products, stocks, reports, users, audit_logs
)

api_router = APIRouter()

# 核心业务API
api_router.include_router(categories.router, prefix="/categories", tags=["商品分类"])
api_router.include_router(products.router, prefix="/products", tags=["商品管理"])
api_router.include_router(stocks.router, prefix="/stocks", tags=["库存流水"])
api_router.include_router(reports.router, prefix="/reports", tags=["统计报表"])

# 系统API
api_router.include_router(users.router, prefix="/users", tags=["用户管理"])
api_router.include_router(audit_logs.router, prefix="/audit-logs", tags=["操作日志"])
