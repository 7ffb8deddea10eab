"""Configuration loading and validation for LedgerLink."""

from __future__ import annotations

from dataclasses import dataclass, field  # dataclass 用于定义结构化配置对象
from pathlib import Path  # Path 提供跨平台路径处理
from typing import Optional

import yaml  # PyYAML 用于解析配置文件

from .constants import (
    DEFAULT_BACKLOG,
    DEFAULT_CONFIG_FILE,
    DEFAULT_CONNECT_TIMEOUT_MS,
    DEFAULT_FILES_DIR,
    DEFAULT_MAX_FRAME_SIZE,
    DEFAULT_PORT,
    HEADER_SIZE,
    LOOPBACK_ALIAS,
)
from .utils.pathing import normalize_path  # 路径归一化


@dataclass(slots=True)
class ServerConfig:
    """服务端监听配置。"""

    bind_host: str = ""  # 空字符串表示所有网卡
    port: int = DEFAULT_PORT  # 监听端口
    backlog: int = DEFAULT_BACKLOG  # listen 队列长度


@dataclass(slots=True)
class ClientConfig:
    """客户端连接目标。"""

    host: str = LOOPBACK_ALIAS  # IPv4 字面量或 localhost
    port: int = DEFAULT_PORT


@dataclass(slots=True)
class ProtocolConfig:
    """帧与超时参数。"""

    max_frame_size: int = DEFAULT_MAX_FRAME_SIZE  # 单帧正文上限
    connect_timeout_ms: int = DEFAULT_CONNECT_TIMEOUT_MS  # 连接超时毫秒
    io_timeout_ms: int = 0  # 收发超时毫秒，0 表示一直阻塞

    @property
    def connect_timeout(self) -> Optional[float]:
        return self.connect_timeout_ms / 1000.0 if self.connect_timeout_ms else None

    @property
    def io_timeout(self) -> Optional[float]:
        return self.io_timeout_ms / 1000.0 if self.io_timeout_ms else None


@dataclass(slots=True)
class LedgerConfig:
    """账本与文件存储配置。"""

    files_dir: Path = field(default_factory=lambda: Path(DEFAULT_FILES_DIR))  # 上传文件根目录
    initial_balance: float = 0.0  # 新用户初始余额
    audit_dir: Path | None = None  # 审计日志目录，为空则不记录


@dataclass(slots=True)
class LoggingConfig:
    """日志配置。"""

    level: str = "info"  # 日志级别
    file: Path | None = None  # 日志文件


@dataclass(slots=True)
class LedgerLinkConfig:
    """聚合所有配置段的顶层对象。"""

    server: ServerConfig = field(default_factory=ServerConfig)
    client: ClientConfig = field(default_factory=ClientConfig)
    protocol: ProtocolConfig = field(default_factory=ProtocolConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def default_config() -> LedgerLinkConfig:
    """返回不依赖配置文件的默认配置。"""

    return LedgerLinkConfig()


def _load_yaml(path: Path) -> dict:
    """辅助函数：读取 YAML 文件并返回字典。"""
    with path.open("r", encoding="utf-8") as f:  # 打开文件，使用 UTF-8 编码
        data = yaml.safe_load(f) or {}  # 安全解析 YAML，空文件回退为空字典
    if not isinstance(data, dict):  # 若顶层不是 dict 则抛错
        raise ValueError("Configuration root must be a mapping")
    return data


def _section(raw: dict, name: str) -> dict:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"Configuration section {name!r} must be a mapping")
    return value


def _check_port(value: int, name: str) -> None:
    if value <= 0 or value > 65535:
        raise ValueError(f"{name} must be in 1-65535")


def load_config(config_path: str | Path = DEFAULT_CONFIG_FILE) -> LedgerLinkConfig:
    """加载并校验配置文件。"""
    path = Path(config_path).expanduser().resolve()  # 解析配置文件路径
    if not path.exists():
        raise FileNotFoundError(f"Config file {path} not found")
    raw = _load_yaml(path)
    server_raw = _section(raw, "server")
    client_raw = _section(raw, "client")
    protocol_raw = _section(raw, "protocol")
    ledger_raw = _section(raw, "ledger")
    logging_raw = _section(raw, "logging")
    server = ServerConfig(
        bind_host=server_raw.get("bind_host") or "",
        port=int(server_raw.get("port", DEFAULT_PORT)),
        backlog=int(server_raw.get("backlog", DEFAULT_BACKLOG)),
    )
    client = ClientConfig(
        host=client_raw.get("host") or LOOPBACK_ALIAS,
        port=int(client_raw.get("port", DEFAULT_PORT)),
    )
    protocol = ProtocolConfig(
        max_frame_size=int(protocol_raw.get("max_frame_size", DEFAULT_MAX_FRAME_SIZE)),
        connect_timeout_ms=int(protocol_raw.get("connect_timeout_ms", DEFAULT_CONNECT_TIMEOUT_MS)),
        io_timeout_ms=int(protocol_raw.get("io_timeout_ms", 0)),
    )
    ledger = LedgerConfig(
        files_dir=normalize_path(path.parent, ledger_raw.get("files_dir") or DEFAULT_FILES_DIR),  # 相对配置文件目录
        initial_balance=float(ledger_raw.get("initial_balance", 0.0)),
        audit_dir=normalize_path(path.parent, ledger_raw["audit_dir"]) if ledger_raw.get("audit_dir") else None,
    )
    logging_config = LoggingConfig(
        level=logging_raw.get("level", "info"),
        file=normalize_path(path.parent, logging_raw["file"]) if logging_raw.get("file") else None,
    )
    config = LedgerLinkConfig(
        server=server,
        client=client,
        protocol=protocol,
        ledger=ledger,
        logging=logging_config,
    )
    # 校验端口与帧参数
    _check_port(config.server.port, "server.port")
    _check_port(config.client.port, "client.port")
    if config.server.backlog <= 0:
        raise ValueError("server.backlog must be positive")
    if config.protocol.max_frame_size <= 0 or config.protocol.max_frame_size >= 2 ** (8 * HEADER_SIZE):
        raise ValueError("protocol.max_frame_size must fit the 4-byte length header")
    if config.protocol.connect_timeout_ms < 0:
        raise ValueError("protocol.connect_timeout_ms must not be negative")
    if config.protocol.io_timeout_ms < 0:
        raise ValueError("protocol.io_timeout_ms must not be negative")
    if config.ledger.initial_balance < 0:
        raise ValueError("ledger.initial_balance must not be negative")
    return config
