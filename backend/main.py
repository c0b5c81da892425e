import uvicorn
import os

from voltstock.core.config import settings

if __name__ == "__main__":
    # 开发模式自动重载（通过环境变量关闭）
    is_dev = os.getenv("APP_ENV", "dev") == "dev"

    uvicorn.run(
        "voltstock.main:app",
        host="127.0.0.1",  # 只监听本地
        port=int(os.getenv("PORT", "8000")),
        reload=is_dev,
        log_level=settings.LOG_LEVEL.lower()
    )
