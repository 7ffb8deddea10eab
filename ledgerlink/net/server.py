"""Threaded accept loop serving one channel per worker thread."""

from __future__ import annotations

import logging  # logging 输出运行日志
import threading  # 每个连接一个线程
from typing import Callable, Optional

from ..errors import AcceptError, ChannelError, EncodingError
from ..proto.messages import Request, Response
from .channel import Channel, ListeningChannel

LOGGER = logging.getLogger(__name__)

Handler = Callable[[Request], Response]

ACCEPT_RETRY_DELAY = 0.1


def serve_channel(channel: Channel, handler: Handler, logger: Optional[logging.Logger] = None) -> int:
    """在单个通道上循环处理请求，直到 QUIT 或 I/O 失败，返回处理的轮数。"""

    log = logger or LOGGER
    peer = channel.peer_address  # 记录对端地址
    rounds = 0
    with channel:  # 无论如何退出都关闭通道
        while True:
            req = channel.receive_request()  # 失败时得到 QUIT
            if req.is_quit:
                if channel.last_error is None:  # 对端主动发出 QUIT 时回一个应答
                    _reply(channel, handler, req, log)
                break
            try:
                resp = handler(req)
            except Exception as exc:  # noqa: BLE001
                log.exception("handler failed for %s from %s", req.type.name, peer)
                resp = Response.failure(f"server error: {exc}")
            try:
                try:
                    channel.send_response(resp)
                except EncodingError as exc:
                    # 应答无法编码时改为发送失败应答，连接保持可用
                    log.warning("cannot encode response for %s: %s", peer, exc)
                    channel.send_response(Response.failure(exc.describe()))
            except ChannelError as exc:
                log.warning("failed to respond to %s: %s", peer, exc.describe())
                break
            rounds += 1
    log.info("connection with %s finished after %d rounds", peer, rounds)
    return rounds


def _reply(channel: Channel, handler: Handler, req: Request, log: logging.Logger) -> None:
    try:
        resp = handler(req)
    except Exception as exc:  # noqa: BLE001
        resp = Response.failure(f"server error: {exc}")
    try:
        channel.send_response(resp)
    except ChannelError as exc:
        log.debug("QUIT reply to %s not delivered: %s", channel.peer_address, exc.describe())


class ChannelServer:
    """负责 accept 并为每个通道派发独立线程。"""

    def __init__(
        self,
        listener: ListeningChannel,
        handler: Handler,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.listener = listener
        self.handler = handler
        self.logger = logger or LOGGER
        self._workers: dict[threading.Thread, Channel] = {}  # 活跃的工作线程及其通道
        self._workers_lock = threading.Lock()
        self._stopping = threading.Event()

    @property
    def active_connections(self) -> int:
        """当前仍在服务的连接数。"""

        with self._workers_lock:
            self._workers = {t: ch for t, ch in self._workers.items() if t.is_alive()}
            return len(self._workers)

    def _spawn(self, channel: Channel) -> None:
        worker = threading.Thread(
            target=self._run_worker,
            args=(channel,),
            name=f"ledgerlink-{channel.peer_address}",
            daemon=True,
        )
        with self._workers_lock:
            if self._stopping.is_set():  # shutdown 已经取走了线程列表
                channel.close()
                return
            self._workers[worker] = channel
        worker.start()

    def _run_worker(self, channel: Channel) -> None:
        try:
            serve_channel(channel, self.handler, self.logger)
        finally:
            with self._workers_lock:
                self._workers.pop(threading.current_thread(), None)

    def serve_forever(self) -> None:
        """持续 accept，直到 :meth:`shutdown` 被调用。"""

        self.logger.info("accepting connections on %s", self.listener.peer_address)
        while not self._stopping.is_set():
            try:
                channel = self.listener.accept()
            except AcceptError as exc:
                if self._stopping.is_set() or self.listener.closed:
                    break
                self.logger.warning("accept failed, retrying: %s", exc)
                self._stopping.wait(ACCEPT_RETRY_DELAY)  # 避免持续失败时空转
                continue
            except ChannelError:
                # 监听通道已关闭
                break
            if self._stopping.is_set():
                channel.close()
                break
            self._spawn(channel)
        self.logger.info("server on %s stopped accepting", self.listener.peer_address)

    def shutdown(self, timeout: Optional[float] = 5.0) -> None:
        """停止 accept、关闭监听通道、唤醒所有通道并等待工作线程结束。"""

        self._stopping.set()
        self.listener.close()
        with self._workers_lock:
            workers = dict(self._workers)
        for channel in workers.values():
            channel.interrupt()  # 阻塞在 recv 上的线程随即读到 EOF
        for worker in workers:
            worker.join(timeout)
        self.logger.info("server shutdown complete")

    def __enter__(self) -> "ChannelServer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()
