from typing import List, Union
import logging

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    PROJECT_NAME: str = "电工器材商品与库存管理"
    API_V1_STR: str = "/api/v1"

    # CORS配置
    BACKEND_CORS_ORIGINS: List[Union[str, AnyHttpUrl]] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # 数据库配置
    SQLITE_DATABASE_URI: str = "sqlite:///./voltstock.db"

    # 日志
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    # 库存策略：出库是否允许库存变为负数（负数按缺货处理）
    ALLOW_NEGATIVE_STOCK: bool = True

    # 未携带 X-User-Id 时的操作人名称
    DEFAULT_OPERATOR_NAME: str = "system"

    # 分页
    DEFAULT_PAGE_SIZE: int = Field(default=10, ge=1)
    MAX_PAGE_SIZE: int = Field(default=1000, ge=1)

    # 仪表盘最近流水条数
    RECENT_TRANSACTIONS_LIMIT: int = 10

    # 仪表盘销售趋势天数（含当天）
    SALES_TREND_DAYS: int = Field(default=7, ge=1)

    class Config:
        case_sensitive = True
        env_file = ".env"


settings = Settings()
logger.info(f"加载配置: API_V1_STR={settings.API_V1_STR}, CORS={settings.BACKEND_CORS_ORIGINS}")
