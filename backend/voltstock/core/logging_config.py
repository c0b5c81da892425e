"""
日志配置
控制台彩色输出；配置了日志目录时另写 app_日期.log 和 error_日期.log
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# 这些库的 INFO 日志量太大
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine")


class ColoredFormatter(logging.Formatter):
    """按级别给 levelname 上色，只用于控制台"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record):
        # 同一条记录还会交给文件处理器，不能原地修改
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{self.COLORS.get(record.levelname, self.RESET)}{record.levelname}{self.RESET}"
        return super().format(record)


def _file_handler(path: Path, level: int) -> logging.FileHandler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    return handler


def setup_logging(log_level: str = "INFO", log_dir: Optional[str] = "logs") -> None:
    """
    配置根日志器（应用启动时调用一次，重复调用会替换之前的处理器）

    Args:
        log_level: 根日志器级别
        log_dir: 日志目录，为空时只输出到控制台
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(ColoredFormatter(LOG_FORMAT, DATE_FORMAT))
    root_logger.addHandler(console_handler)

    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        today = datetime.now().strftime("%Y-%m-%d")
        root_logger.addHandler(_file_handler(path / f"app_{today}.log", logging.INFO))
        root_logger.addHandler(_file_handler(path / f"error_{today}.log", logging.ERROR))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"📋 日志已初始化 级别={log_level} 目录={log_dir or '-'}")
