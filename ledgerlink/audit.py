"""Audit logging helpers for ledger operations."""

from __future__ import annotations

import datetime as _dt  # 日期时间格式化
from pathlib import Path  # Path 处理路径


def log_event(
    user_id: int,
    action: str,
    status: str,
    amount: float,
    balance: float,
    *,
    base_dir: Path,
    detail: str = "",
) -> None:
    """Append an audit entry to the daily ledger log."""

    now = _dt.datetime.now(_dt.timezone.utc)
    timestamp = now.isoformat(timespec="seconds").replace("+00:00", "Z")
    log_dir = Path(base_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / f"{now.date().isoformat()}.log"
    line = (
        f"[{timestamp}] user={user_id} action={action} status={status} "
        f"amount={amount} balance={balance}"
    )
    if detail:
        line += f" detail={detail}"
    with log_path.open("a", encoding="utf-8") as handle:
        handle.write(line + "\n")
        handle.flush()
