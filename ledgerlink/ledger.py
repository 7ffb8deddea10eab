"""In-memory finance ledger used as the default request handler."""

from __future__ import annotations

import logging  # logging 记录业务事件
import math
import threading  # 所有工作线程共享一个账本
from pathlib import Path  # Path 处理文件存储
from typing import Dict, Optional

from .audit import log_event
from .constants import FIELD_DELIMITER
from .proto.messages import Request, RequestType, Response
from .utils.pathing import ensure_within

LOGGER = logging.getLogger(__name__)


class FinanceLedger:
    """按用户维护余额，并为每个用户提供独立的文件目录。"""

    def __init__(
        self,
        files_dir: Path | str,
        *,
        initial_balance: float = 0.0,
        audit_dir: Optional[Path | str] = None,
    ) -> None:
        self.files_dir = Path(files_dir)
        self.initial_balance = float(initial_balance)
        self.audit_dir = Path(audit_dir) if audit_dir else None
        self._balances: Dict[int, float] = {}  # user_id -> 余额
        self._lock = threading.Lock()
        self._dispatch = {
            RequestType.BALANCE: self._balance,
            RequestType.DEPOSIT: self._deposit,
            RequestType.WITHDRAW: self._withdraw,
            RequestType.UPLOAD: self._upload,
            RequestType.DOWNLOAD: self._download,
            RequestType.QUIT: self._quit,
        }

    def __call__(self, req: Request) -> Response:
        return self.handle(req)

    def balance_of(self, user_id: int) -> float:
        with self._lock:
            return self._balances.get(user_id, self.initial_balance)

    def set_balance(self, user_id: int, balance: float) -> None:
        """直接设置余额，主要用于初始化与测试。"""

        with self._lock:
            self._balances[user_id] = float(balance)

    def handle(self, req: Request) -> Response:
        """根据请求类型分派到具体操作。"""

        operation = self._dispatch.get(req.type)
        if operation is None:
            return Response.failure(f"Unsupported request type: {req.type}")
        resp = operation(req)
        LOGGER.debug(
            "user=%s %s -> success=%s message=%s", req.user_id, req.type.name, resp.success, resp.message
        )
        if self.audit_dir is not None and req.type != RequestType.QUIT:
            log_event(
                req.user_id,
                req.type.name,
                "ok" if resp.success else "failed",
                req.amount,
                resp.balance,
                base_dir=self.audit_dir,
                detail=req.filename,
            )
        return resp

    # -- balance operations ---------------------------------------------

    def _balance(self, req: Request) -> Response:
        return Response(True, self.balance_of(req.user_id), "", "OK")

    @staticmethod
    def _valid_amount(amount: float) -> bool:
        return math.isfinite(amount) and amount > 0

    def _deposit(self, req: Request) -> Response:
        if not self._valid_amount(req.amount):
            return Response(False, self.balance_of(req.user_id), "", "Invalid amount")
        with self._lock:
            balance = self._balances.get(req.user_id, self.initial_balance) + req.amount
            self._balances[req.user_id] = balance
        return Response(True, balance, "", "Deposit successful")

    def _withdraw(self, req: Request) -> Response:
        if not self._valid_amount(req.amount):
            return Response(False, self.balance_of(req.user_id), "", "Invalid amount")
        with self._lock:
            balance = self._balances.get(req.user_id, self.initial_balance)
            if req.amount > balance:  # 余额不足不修改账本
                return Response(False, balance, "", "Insufficient funds")
            balance -= req.amount
            self._balances[req.user_id] = balance
        return Response(True, balance, "", "Withdrawal successful")

    # -- file operations ------------------------------------------------

    def _user_file(self, req: Request) -> Path:
        return ensure_within(self.files_dir / str(req.user_id), req.filename)

    def _upload(self, req: Request) -> Response:
        balance = self.balance_of(req.user_id)
        # 下载时内容位于应答的非末尾字段，因此不能含分隔符
        if FIELD_DELIMITER in req.data:
            return Response(False, balance, "", f"File content must not contain {FIELD_DELIMITER!r}")
        try:
            target = self._user_file(req)
        except ValueError as exc:
            return Response(False, balance, "", f"Invalid filename: {exc}")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(req.data, encoding="utf-8")
        LOGGER.info("user %s uploaded %s (%d bytes)", req.user_id, req.filename, len(req.data))
        return Response(True, balance, "", "File uploaded")

    def _download(self, req: Request) -> Response:
        balance = self.balance_of(req.user_id)
        try:
            target = self._user_file(req)
        except ValueError as exc:
            return Response(False, balance, "", f"Invalid filename: {exc}")
        if not target.is_file():
            return Response(False, balance, "", "File not found")
        content = target.read_text(encoding="utf-8")
        if FIELD_DELIMITER in content:
            return Response(False, balance, "", f"File content contains {FIELD_DELIMITER!r}")
        return Response(True, balance, content, "File downloaded")

    def _quit(self, req: Request) -> Response:
        return Response(True, self.balance_of(req.user_id), "", "Goodbye")
