"""Path normalization utilities for LedgerLink."""

from __future__ import annotations

from pathlib import Path  # Path 提供跨平台路径操作


def normalize_path(base: Path | str, p: Path | str) -> Path:
    """将输入路径规范化并转换为绝对路径。"""
    base_path = Path(base).expanduser().resolve()  # 展开用户目录并转换为绝对路径
    candidate = Path(p).expanduser()
    if candidate.is_absolute():  # 绝对路径直接规范化
        return candidate.resolve()
    return (base_path / candidate).resolve()  # 相对路径拼接后再解析


def ensure_within(base: Path | str, p: Path | str) -> Path:
    """确保路径位于给定基路径之内，用于对端提供的文件名。"""
    base_path = Path(base).expanduser().resolve()
    candidate = Path(p)
    if not str(p) or candidate.is_absolute():  # 对端不得指定绝对路径
        raise ValueError(f"Path {p!r} must be a non-empty relative path")
    target = (base_path / candidate).resolve()
    try:
        target.relative_to(base_path)  # 如果 target 不在 base 下会抛出 ValueError
    except ValueError as exc:
        raise ValueError(f"Path {target} escapes base {base_path}") from exc
    if target == base_path:
        raise ValueError(f"Path {p!r} does not name a file")
    return target
