"""请求上下文 - 当前操作人

不使用全局登录状态，操作人作为参数显式传给每个写操作。
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Operator:
    user_id: Optional[int]
    user_name: str

    @classmethod
    def system(cls, name: str = "system") -> "Operator":
        return cls(user_id=None, user_name=name)
