"""Length-prefixed framing helpers for blocking stream sockets."""

from __future__ import annotations

import socket  # socket 提供阻塞式收发
import struct  # struct 处理二进制长度

from ..constants import DEFAULT_MAX_FRAME_SIZE, HEADER_SIZE
from ..errors import ChannelIOError, FailureKind, FrameTooLarge

# 4 字节网络字节序无符号长度头
LENGTH_STRUCT = struct.Struct("!I")


def _send_all(sock: socket.socket, data: bytes) -> None:
    """循环发送直到全部字节写出。"""

    view = memoryview(data)  # 使用 memoryview 避免切片复制
    sent = 0  # 已发送字节数
    while sent < len(view):
        try:
            n = sock.send(view[sent:])  # 可能只写出一部分
        except socket.timeout as exc:
            raise ChannelIOError("timed out while sending frame", kind=FailureKind.TIMEOUT) from exc
        except OSError as exc:
            raise ChannelIOError(f"send failed: {exc}") from exc
        if n == 0:  # 对端已关闭写入通道
            raise ChannelIOError("connection closed while sending frame", kind=FailureKind.PEER_CLOSED)
        sent += n


def _recv_exact(sock: socket.socket, size: int, what: str, *, at_boundary: bool = False) -> bytes:
    """读取恰好 ``size`` 字节，不足时抛出 :class:`ChannelIOError`。"""

    buf = bytearray(size)  # 按声明长度分配缓冲区
    view = memoryview(buf)
    received = 0
    while received < size:
        try:
            n = sock.recv_into(view[received:], size - received)
        except socket.timeout as exc:
            raise ChannelIOError(f"timed out while reading {what}", kind=FailureKind.TIMEOUT) from exc
        except OSError as exc:
            raise ChannelIOError(f"recv failed while reading {what}: {exc}") from exc
        if n == 0:  # 流提前结束
            if received == 0 and at_boundary:  # 帧之间的正常关闭
                raise ChannelIOError("peer closed the connection", kind=FailureKind.PEER_CLOSED)
            raise ChannelIOError(
                f"unexpected EOF while reading {what} ({received}/{size} bytes)",
                kind=FailureKind.PEER_CLOSED,
            )
        received += n
    return bytes(buf)


def write_frame(sock: socket.socket, payload: bytes, *, max_size: int = DEFAULT_MAX_FRAME_SIZE) -> None:
    """发送单个长度前缀帧。"""

    length = len(payload)
    # 发送前检查长度，避免对端拒收半帧
    if length > max_size:
        raise FrameTooLarge(length, max_size)
    # 写入长度头
    _send_all(sock, LENGTH_STRUCT.pack(length))
    # 写入正文
    if length:
        _send_all(sock, payload)


def read_frame(sock: socket.socket, *, max_size: int = DEFAULT_MAX_FRAME_SIZE) -> bytes:
    """接收单个长度前缀帧并返回正文。"""

    header = _recv_exact(sock, HEADER_SIZE, "frame length", at_boundary=True)
    (length,) = LENGTH_STRUCT.unpack(header)
    # 在分配缓冲区之前拒绝超长帧
    if length > max_size:
        raise FrameTooLarge(length, max_size)
    if length == 0:
        return b""
    return _recv_exact(sock, length, "frame payload")
