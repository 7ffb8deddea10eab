"""Request and response records exchanged over a channel."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class RequestType(enum.IntEnum):
    """请求类型，线上以整数表示。"""

    DEPOSIT = 0
    WITHDRAW = 1
    BALANCE = 2
    UPLOAD = 3
    DOWNLOAD = 4
    QUIT = 5


@dataclass(slots=True)
class Request:
    """客户端发出的单次操作。"""

    type: RequestType  # 操作类型
    user_id: int = 0  # 账户 ID
    amount: float = 0.0  # 金额，仅存取款使用
    filename: str = ""  # 文件名，仅上传下载使用
    data: str = ""  # 附带数据，可包含分隔符

    @property
    def is_quit(self) -> bool:
        return self.type == RequestType.QUIT


@dataclass(slots=True)
class Response:
    """服务端对请求的应答。"""

    success: bool
    balance: float = 0.0
    data: str = ""
    message: str = ""

    @classmethod
    def failure(cls, message: str) -> "Response":
        """构造失败应答。"""

        return cls(success=False, balance=0.0, data="", message=message)
