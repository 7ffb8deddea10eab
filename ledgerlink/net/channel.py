"""Blocking request/response channels over TCP stream sockets.

A :class:`ListeningChannel` only accepts connections; a :class:`Channel` only
exchanges frames. Both own exactly one socket and close it once, either
explicitly or when leaving a ``with`` block.
"""

from __future__ import annotations

import contextlib  # 安全关闭 socket
import enum
import logging  # logging 作为诊断输出
import socket  # socket 提供阻塞式 TCP
from typing import Optional

from ..constants import ANY_ADDRESS, DEFAULT_BACKLOG, DEFAULT_MAX_FRAME_SIZE, LOOPBACK_ADDRESS, LOOPBACK_ALIAS
from ..errors import (
    AcceptError,
    ChannelError,
    ChannelIOError,
    ConnectionSetupError,
    FailureKind,
    FrameTooLarge,
)
from ..proto.codec import bytes_to_request, bytes_to_response, request_to_bytes, response_to_bytes
from ..proto.messages import Request, RequestType, Response
from .framing import read_frame, write_frame

LOGGER = logging.getLogger(__name__)


class ChannelState(str, enum.Enum):
    """已建立通道的收发状态。"""

    IDLE = "idle"
    AWAITING_FRAME = "awaiting-frame"
    CLOSED = "closed"


def resolve_ipv4(host: str) -> str:
    """将 localhost 映射到回环地址，并校验 IPv4 字面量。"""

    if host == LOOPBACK_ALIAS:
        return LOOPBACK_ADDRESS
    try:
        socket.inet_pton(socket.AF_INET, host)  # 仅接受点分十进制 IPv4
    except (OSError, TypeError) as exc:
        raise ConnectionSetupError(f"invalid IPv4 address: {host!r}") from exc
    return host


def _format_address(addr: tuple) -> str:
    return f"{addr[0]}:{addr[1]}"


class _SocketOwner:
    """持有单个 socket 的公共部分。"""

    def __init__(
        self,
        sock: socket.socket,
        *,
        max_frame_size: int = DEFAULT_MAX_FRAME_SIZE,
        io_timeout: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._sock: Optional[socket.socket] = sock
        self._fd = sock.fileno()  # 关闭后仍可用于诊断
        self.max_frame_size = max_frame_size
        self.io_timeout = io_timeout
        self.logger = logger or LOGGER

    @property
    def closed(self) -> bool:
        return self._sock is None

    def fileno(self) -> int:
        """返回底层描述符，关闭后返回 -1。"""

        return -1 if self._sock is None else self._fd

    def _require_socket(self) -> socket.socket:
        if self._sock is None:
            raise ChannelIOError("channel is closed", kind=FailureKind.CLOSED)
        return self._sock

    def close(self) -> None:
        """释放 socket，重复调用无副作用。"""

        sock, self._sock = self._sock, None
        if sock is None:
            return
        try:
            sock.close()
        except OSError as exc:
            self.logger.warning("error closing socket fd=%s: %s", self._fd, exc)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class Channel(_SocketOwner):
    """已建立的点对点通道，一次只允许一个往返。"""

    def __init__(
        self,
        sock: socket.socket,
        *,
        max_frame_size: int = DEFAULT_MAX_FRAME_SIZE,
        io_timeout: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        try:
            peer = sock.getpeername()  # 建立时解析一次并缓存
        except OSError as exc:
            sock.close()
            raise ConnectionSetupError(f"failed to resolve peer address: {exc}") from exc
        super().__init__(sock, max_frame_size=max_frame_size, io_timeout=io_timeout, logger=logger)
        self._peer_address = _format_address(peer)
        sock.settimeout(io_timeout)
        self.state = ChannelState.IDLE
        self.last_error: Optional[ChannelError] = None

    @property
    def peer_address(self) -> str:
        return self._peer_address

    def close(self) -> None:
        if not self.closed:
            self.logger.debug("closing channel to %s", self._peer_address)
        super().close()
        self.state = ChannelState.CLOSED

    def __repr__(self) -> str:
        return f"<Channel peer={self._peer_address} fd={self.fileno()} state={self.state.value}>"

    # -- framing ---------------------------------------------------------

    def write_frame(self, payload: bytes) -> None:
        """发送单帧；写出部分字节后失败则关闭通道。"""

        sock = self._require_socket()
        try:
            write_frame(sock, payload, max_size=self.max_frame_size)
        except ChannelIOError as exc:
            # 半帧已进入流中，后续帧边界无法恢复
            self._abandon(exc)
            raise

    def read_frame(self) -> bytes:
        """接收单帧；任何读取失败都关闭通道。"""

        sock = self._require_socket()
        self.state = ChannelState.AWAITING_FRAME
        try:
            return read_frame(sock, max_size=self.max_frame_size)
        except (ChannelIOError, FrameTooLarge) as exc:
            # 超长帧的正文或迟到的应答仍留在流中
            self._abandon(exc)
            raise
        finally:
            if not self.closed:
                self.state = ChannelState.IDLE

    def _abandon(self, exc: ChannelError) -> None:
        if exc.kind != FailureKind.PEER_CLOSED:
            self.logger.debug("dropping channel to %s after %s", self._peer_address, exc.kind.value)
        self.close()

    def interrupt(self) -> None:
        """从其他线程唤醒阻塞中的收发；关闭仍由持有者完成。"""

        sock = self._sock
        if sock is not None:
            with contextlib.suppress(OSError):
                sock.shutdown(socket.SHUT_RDWR)

    def _begin_round(self) -> None:
        if self.state == ChannelState.AWAITING_FRAME:
            raise ChannelIOError("a frame exchange is already in progress on this channel")

    # -- client side -----------------------------------------------------

    def call(self, req: Request) -> Response:
        """发送请求并等待应答，失败时抛出带类别的异常。"""

        self._begin_round()
        self.write_frame(request_to_bytes(req))
        return bytes_to_response(self.read_frame())

    def send_request(self, req: Request) -> Response:
        """发送请求；任何通道错误都折叠为失败应答。"""

        try:
            resp = self.call(req)
        except ChannelError as exc:
            self.last_error = exc
            self.logger.warning("request to %s failed: %s", self._peer_address, exc.describe())
            return Response.failure(exc.describe())
        self.last_error = None
        return resp

    # -- server side -----------------------------------------------------

    def read_request(self) -> Request:
        """读取并解码一个请求，失败时抛出带类别的异常。"""

        self._begin_round()
        return bytes_to_request(self.read_frame())

    def receive_request(self) -> Request:
        """读取请求；任何通道错误都折叠为 QUIT。"""

        try:
            req = self.read_request()
        except ChannelError as exc:
            self.last_error = exc
            if exc.kind == FailureKind.PEER_CLOSED:
                self.logger.info("peer %s disconnected", self._peer_address)
            else:
                self.logger.warning("receive from %s failed: %s", self._peer_address, exc.describe())
            return Request(RequestType.QUIT)
        self.last_error = None
        return req

    def send_response(self, resp: Response) -> None:
        """编码并发送应答。"""

        self.write_frame(response_to_bytes(resp))


class ListeningChannel(_SocketOwner):
    """服务端监听通道，只负责 accept。"""

    def __init__(
        self,
        sock: socket.socket,
        *,
        max_frame_size: int = DEFAULT_MAX_FRAME_SIZE,
        io_timeout: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(sock, max_frame_size=max_frame_size, io_timeout=io_timeout, logger=logger)
        host, port = sock.getsockname()[:2]
        self.host = host
        self.port = port

    @property
    def peer_address(self) -> str:
        return f"{self.host}:{self.port}"

    def __repr__(self) -> str:
        return f"<ListeningChannel addr={self.peer_address} fd={self.fileno()}>"

    def accept(self) -> Channel:
        """阻塞直到有对端连接，返回新的已建立通道。"""

        sock = self._require_socket()
        try:
            conn, addr = sock.accept()
        except OSError as exc:
            self.logger.warning("error accepting connection: %s", exc)
            raise AcceptError(f"accept failed: {exc}") from exc
        self.logger.info("accepted connection from %s", _format_address(addr))
        try:
            return Channel(
                conn,
                max_frame_size=self.max_frame_size,
                io_timeout=self.io_timeout,
                logger=self.logger,
            )
        except ConnectionSetupError as exc:
            # 对端在 accept 与 getpeername 之间已断开
            raise AcceptError(str(exc)) from exc

    def close(self) -> None:
        sock = self._sock
        if sock is not None:
            # 唤醒阻塞在 accept 上的线程
            with contextlib.suppress(OSError):
                sock.shutdown(socket.SHUT_RDWR)
            self.logger.info("listener on %s closed", self.peer_address)
        super().close()


def open_as_server(
    bind_address: Optional[str],
    port: int,
    *,
    backlog: int = DEFAULT_BACKLOG,
    max_frame_size: int = DEFAULT_MAX_FRAME_SIZE,
    io_timeout: Optional[float] = None,
    logger: Optional[logging.Logger] = None,
) -> ListeningChannel:
    """创建、绑定并监听服务端 socket。"""

    log = logger or LOGGER
    host = resolve_ipv4(bind_address) if bind_address else ANY_ADDRESS  # 为空表示所有网卡
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    except OSError as exc:
        log.error("error creating server socket: %s", exc)
        raise ConnectionSetupError(f"socket creation failed: {exc}") from exc
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)  # 允许地址复用
        sock.bind((host, port))
        sock.listen(backlog)
    except OSError as exc:
        sock.close()  # 不留下半初始化的监听 socket
        log.error("error setting up listener on %s:%s: %s", host, port, exc)
        raise ConnectionSetupError(f"listen on {host}:{port} failed: {exc}") from exc
    listener = ListeningChannel(sock, max_frame_size=max_frame_size, io_timeout=io_timeout, logger=log)
    log.info("server listening on %s", listener.peer_address)
    return listener


def open_as_client(
    host: str,
    port: int,
    *,
    connect_timeout: Optional[float] = None,
    io_timeout: Optional[float] = None,
    max_frame_size: int = DEFAULT_MAX_FRAME_SIZE,
    logger: Optional[logging.Logger] = None,
) -> Channel:
    """连接到 ``host:port`` 并返回已建立通道。"""

    log = logger or LOGGER
    address = resolve_ipv4(host)
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    except OSError as exc:
        log.error("error creating client socket: %s", exc)
        raise ConnectionSetupError(f"socket creation failed: {exc}") from exc
    try:
        sock.settimeout(connect_timeout)
        sock.connect((address, port))
    except OSError as exc:
        sock.close()
        log.error("error connecting to %s:%s: %s", address, port, exc)
        raise ConnectionSetupError(f"connect to {address}:{port} failed: {exc}") from exc
    channel = Channel(sock, max_frame_size=max_frame_size, io_timeout=io_timeout, logger=log)
    log.info("connected to server at %s", channel.peer_address)
    return channel
