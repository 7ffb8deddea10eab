"""Error taxonomy shared by the channel, framing and codec layers.

Every error carries a :class:`FailureKind` so callers can tell a peer that
went away apart from malformed data or an oversize frame without parsing the
message text.
"""

from __future__ import annotations

import enum


class FailureKind(str, enum.Enum):
    """失败类别标签。"""

    SETUP = "setup"
    IO = "io"
    PEER_CLOSED = "peer-closed"
    TIMEOUT = "timeout"
    CLOSED = "closed"
    OVERSIZE = "oversize"
    MALFORMED = "malformed"
    ENCODING = "encoding"


class ChannelError(Exception):
    """所有通道错误的基类。"""

    default_kind = FailureKind.IO

    def __init__(self, message: str, *, kind: FailureKind | None = None) -> None:
        super().__init__(message)
        self.kind = kind or self.default_kind

    def describe(self) -> str:
        """返回带类别前缀的诊断文本。"""

        return f"{self.kind.value}: {self}"


class ConnectionSetupError(ChannelError):
    """socket/bind/listen/connect 失败，构造中止。"""

    default_kind = FailureKind.SETUP


class ChannelIOError(ChannelError):
    """收发过程中的 I/O 失败。"""


class AcceptError(ChannelError):
    """accept 暂时失败，调用方可以重试。"""


class FrameTooLarge(ChannelError):
    """帧长度超过配置的上限。"""

    default_kind = FailureKind.OVERSIZE

    def __init__(self, length: int, limit: int) -> None:
        super().__init__(f"frame length {length} exceeds limit {limit}")
        self.length = length
        self.limit = limit


class MalformedMessage(ChannelError):
    """解码时字段不足或字段无法解析。"""

    default_kind = FailureKind.MALFORMED


class EncodingError(ChannelError):
    """字段内容无法被分隔符编码表示。"""

    default_kind = FailureKind.ENCODING
