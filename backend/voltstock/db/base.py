import uuid

from sqlalchemy.orm import declarative_base

Base = declarative_base()


def generate_id(prefix: str) -> str:
    """生成带前缀的字符串主键，如 cat_3f2a...、prd_9b1c..."""
    return f"{prefix}_{uuid.uuid4().hex}"
