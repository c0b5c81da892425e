import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError

from voltstock.api.api_v1.api import api_router as api_v1_router
from voltstock.core.config import settings
from voltstock.core.exceptions import (
    AttributeValidationError, CatalogError, MissingReferenceError, TransactionError, TransportError
)
from voltstock.core.logging_config import setup_logging
from voltstock.db.init_db import ensure_tables_exist

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 初始化日志系统
    setup_logging(settings.LOG_LEVEL, settings.LOG_DIR)
    logger.info("🚀 应用启动中...")

    # 确保数据库表存在
    try:
        await ensure_tables_exist()
        logger.info("📊 数据库表已就绪")
    except DBAPIError as e:
        logger.error(f"❌ 数据库不可用: {e}")
        raise

    yield
    logger.info("🛑 应用关闭中...")


def register_exception_handlers(app: FastAPI) -> None:
    """业务异常统一转换为 JSON 响应"""

    @app.exception_handler(AttributeValidationError)
    async def handle_validation_error(request: Request, exc: AttributeValidationError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "errors": [e.to_dict() for e in exc.errors]},
        )

    @app.exception_handler(TransactionError)
    async def handle_transaction_error(request: Request, exc: TransactionError):
        logger.info(f"库存流水被拒绝 [{exc.code}]: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "code": exc.code},
        )

    @app.exception_handler(MissingReferenceError)
    async def handle_missing_reference(request: Request, exc: MissingReferenceError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "resource_type": exc.resource_type, "resource_id": exc.resource_id},
        )

    @app.exception_handler(CatalogError)
    async def handle_catalog_error(request: Request, exc: CatalogError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(DBAPIError)
    async def handle_db_error(request: Request, exc: DBAPIError):
        # 数据存储不可用时原样上报，不自动重试（库存流水不是幂等的）
        logger.error(f"❌ 数据库错误 {request.method} {request.url.path}: {exc}")
        error = TransportError("数据存储不可用，请稍后重试")
        return JSONResponse(status_code=error.status_code, content={"detail": error.message})


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        description="电工器材商品目录、分类规格与库存流水",
        lifespan=lifespan
    )

    # CORS配置
    if settings.BACKEND_CORS_ORIGINS:
        logger.info(f"配置CORS，允许的源: {settings.BACKEND_CORS_ORIGINS}")
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    register_exception_handlers(app)

    logger.info(f"注册API路由，前缀: {settings.API_V1_STR}")
    app.include_router(api_v1_router, prefix=settings.API_V1_STR)

    @app.get("/")
    async def root():
        return {"message": settings.PROJECT_NAME}

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000, log_level="info")
