"""Command line entry point for LedgerLink."""

from __future__ import annotations

import sys  # sys 用于访问 argv 与退出状态

from .config import default_config, load_config
from .constants import DEFAULT_CONFIG_FILE
from .logging_setup import init_logging  # 初始化日志
from .cli import main as cli_main  # CLI 主函数


def main(argv: list[str] | None = None) -> int:
    """入口函数，供 python -m ledgerlink 调用。"""
    try:
        cfg = load_config(DEFAULT_CONFIG_FILE)  # 尝试加载配置用于日志设定
    except Exception:
        cfg = default_config()  # 配置缺失或无效时使用默认日志设置
    log_file = str(cfg.logging.file) if cfg.logging.file else None
    init_logging(cfg.logging.level, log_file)
    return cli_main(argv)


if __name__ == "__main__":
    sys.exit(main())  # 将返回值作为进程退出码
