"""Command line interface for LedgerLink."""

from __future__ import annotations

import argparse  # argparse 用于解析命令行参数
import logging  # logging 提供日志支持
import threading
from pathlib import Path
from typing import Iterable  # Iterable 类型提示

from .config import LedgerLinkConfig, default_config, load_config  # 导入配置加载逻辑
from .constants import DEFAULT_CONFIG_FILE  # 默认常量
from .errors import ChannelError, ConnectionSetupError
from .ledger import FinanceLedger
from .net.channel import open_as_client, open_as_server
from .net.server import ChannelServer
from .proto.messages import Request, RequestType

LOGGER = logging.getLogger(__name__)  # 获取模块级日志记录器


def _load(args: argparse.Namespace) -> LedgerLinkConfig:
    """加载配置；默认配置文件缺失时使用内置默认值。"""

    if args.config == DEFAULT_CONFIG_FILE and not Path(args.config).exists():
        LOGGER.debug("no %s found, using built-in defaults", DEFAULT_CONFIG_FILE)
        return default_config()
    return load_config(args.config)


def command_check(args: argparse.Namespace) -> int:
    """处理 check 子命令。"""

    try:
        cfg = _load(args)
    except FileNotFoundError as exc:  # 配置缺失
        LOGGER.error(str(exc))
        return 1
    except Exception as exc:  # 其他校验错误
        LOGGER.error("configuration error: %s", exc)
        return 1
    print(f"Server listening on {cfg.server.bind_host or '0.0.0.0'}:{cfg.server.port}")
    print(f"Client connects to {cfg.client.host}:{cfg.client.port}")
    print(f"Max frame size: {cfg.protocol.max_frame_size} bytes")
    print("Configuration check passed.")
    return 0


def command_serve(args: argparse.Namespace) -> int:
    """处理 serve 子命令。"""

    try:
        cfg = _load(args)
    except Exception as exc:  # noqa: BLE001
        LOGGER.error("failed to load config: %s", exc)
        return 1
    if args.bind_host is not None:
        cfg.server.bind_host = args.bind_host
    if args.port is not None:
        cfg.server.port = args.port
    ledger = FinanceLedger(
        cfg.ledger.files_dir,
        initial_balance=cfg.ledger.initial_balance,
        audit_dir=cfg.ledger.audit_dir,
    )
    try:
        listener = open_as_server(
            cfg.server.bind_host or None,
            cfg.server.port,
            backlog=cfg.server.backlog,
            max_frame_size=cfg.protocol.max_frame_size,
            io_timeout=cfg.protocol.io_timeout,
            logger=logging.getLogger("ledgerlink.net"),
        )
    except ConnectionSetupError as exc:
        LOGGER.error("cannot start server: %s", exc)
        return 1
    server = ChannelServer(listener, ledger, logger=logging.getLogger("ledgerlink.server"))
    acceptor = threading.Thread(target=server.serve_forever, name="ledgerlink-accept", daemon=True)
    acceptor.start()
    try:
        while acceptor.is_alive():
            acceptor.join(0.5)  # 保持主线程可响应 Ctrl-C
    except KeyboardInterrupt:
        LOGGER.info("received keyboard interrupt, shutting down")
    finally:
        server.shutdown()
    return 0


def _build_request(args: argparse.Namespace) -> Request:
    return Request(
        type=RequestType[args.type.upper()],
        user_id=args.user_id,
        amount=args.amount,
        filename=args.filename,
        data=args.data,
    )


def command_request(args: argparse.Namespace) -> int:
    """处理 request 子命令：发送单个请求并打印应答。"""

    try:
        cfg = _load(args)
    except Exception as exc:  # noqa: BLE001
        LOGGER.error("failed to load config: %s", exc)
        return 1
    host = args.host or cfg.client.host
    port = args.port or cfg.client.port
    try:
        req = _build_request(args)
    except KeyError:
        LOGGER.error("unknown request type: %s", args.type)
        return 1
    try:
        channel = open_as_client(
            host,
            port,
            connect_timeout=cfg.protocol.connect_timeout,
            io_timeout=cfg.protocol.io_timeout,
            max_frame_size=cfg.protocol.max_frame_size,
        )
    except ConnectionSetupError as exc:
        LOGGER.error("cannot connect to %s:%s: %s", host, port, exc)
        return 1
    with channel:
        resp = channel.send_request(req)
        if req.type != RequestType.QUIT:
            try:
                channel.call(Request(RequestType.QUIT, user_id=req.user_id))  # 礼貌地结束会话
            except ChannelError as exc:
                LOGGER.debug("QUIT not acknowledged: %s", exc)
    print(f"success: {resp.success}")
    print(f"balance: {resp.balance}")
    print(f"message: {resp.message}")
    if resp.data:
        print(f"data: {resp.data}")
    return 0 if resp.success else 1


def build_parser() -> argparse.ArgumentParser:
    """构建顶层解析器。"""

    parser = argparse.ArgumentParser(prog="ledgerlink", description="LedgerLink finance channel")
    subparsers = parser.add_subparsers(dest="command", required=True)
    check_parser = subparsers.add_parser("check", help="validate config.yaml")
    check_parser.add_argument("--config", default=DEFAULT_CONFIG_FILE, help="path to config file")
    check_parser.set_defaults(func=command_check)
    serve_parser = subparsers.add_parser("serve", help="run the finance server")
    serve_parser.add_argument("--config", default=DEFAULT_CONFIG_FILE, help="path to config file")
    serve_parser.add_argument("--bind-host", help="override bind address")
    serve_parser.add_argument("--port", type=int, help="override listen port")
    serve_parser.set_defaults(func=command_serve)
    request_parser = subparsers.add_parser("request", help="send a single request to a server")
    request_parser.add_argument("--config", default=DEFAULT_CONFIG_FILE, help="path to config file")
    request_parser.add_argument("--host", help="override server address")
    request_parser.add_argument("--port", type=int, help="override server port")
    request_parser.add_argument("type", choices=[t.name.lower() for t in RequestType], help="operation")
    request_parser.add_argument("--user-id", type=int, default=0, help="account id")
    request_parser.add_argument("--amount", type=float, default=0.0, help="deposit/withdraw amount")
    request_parser.add_argument("--filename", default="", help="file name for upload/download")
    request_parser.add_argument("--data", default="", help="file content for upload")
    request_parser.set_defaults(func=command_request)
    return parser


def main(argv: Iterable[str] | None = None) -> int:
    """CLI 主入口。"""

    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(args, "func", None)
    if handler is None:
        parser.print_help()
        return 1
    return handler(args)
