from __future__ import annotations

import pytest

from ledgerlink.ledger import FinanceLedger
from ledgerlink.proto.messages import Request, RequestType, Response


def test_balance_defaults_to_initial(tmp_path):
    ledger = FinanceLedger(tmp_path, initial_balance=100.5)
    assert ledger(Request(RequestType.BALANCE, 42)) == Response(True, 100.5, "", "OK")


def test_deposit_and_withdraw(ledger):
    assert ledger(Request(RequestType.DEPOSIT, 1, 25.0)).balance == 25.0
    resp = ledger(Request(RequestType.WITHDRAW, 1, 10.0))
    assert resp.success and resp.balance == 15.0
    assert ledger.balance_of(1) == 15.0
    assert ledger.balance_of(2) == 0.0


def test_insufficient_funds_leaves_balance(ledger):
    ledger.set_balance(3, 5.0)
    resp = ledger(Request(RequestType.WITHDRAW, 3, 6.0))
    assert resp == Response(False, 5.0, "", "Insufficient funds")
    assert ledger.balance_of(3) == 5.0


@pytest.mark.parametrize("amount", [0.0, -1.0, float("nan"), float("inf")])
def test_invalid_amounts(ledger, amount):
    assert ledger(Request(RequestType.DEPOSIT, 1, amount)).message == "Invalid amount"
    assert ledger(Request(RequestType.WITHDRAW, 1, amount)).message == "Invalid amount"


def test_upload_then_download(ledger, tmp_path):
    up = ledger(Request(RequestType.UPLOAD, 9, 0.0, "notes.txt", "line one\nline two"))
    assert up.success
    assert (tmp_path / "files" / "9" / "notes.txt").read_text(encoding="utf-8") == "line one\nline two"
    down = ledger(Request(RequestType.DOWNLOAD, 9, 0.0, "notes.txt"))
    assert down == Response(True, 0.0, "line one\nline two", "File downloaded")


def test_files_are_per_user(ledger):
    ledger(Request(RequestType.UPLOAD, 1, 0.0, "a.txt", "mine"))
    assert ledger(Request(RequestType.DOWNLOAD, 2, 0.0, "a.txt")).message == "File not found"


@pytest.mark.parametrize("name", ["../escape.txt", "/etc/passwd", ""])
def test_filenames_must_stay_inside_user_dir(ledger, name):
    resp = ledger(Request(RequestType.UPLOAD, 1, 0.0, name, "x"))
    assert resp.success is False
    assert resp.message.startswith("Invalid filename")


def test_upload_rejects_delimiter_content(ledger):
    resp = ledger(Request(RequestType.UPLOAD, 1, 0.0, "a.txt", "a|b"))
    assert resp.success is False


def test_quit(ledger):
    assert ledger(Request(RequestType.QUIT, 1)).message == "Goodbye"


def test_audit_log_written(tmp_path):
    ledger = FinanceLedger(tmp_path / "files", audit_dir=tmp_path / "audit")
    ledger(Request(RequestType.DEPOSIT, 4, 12.0))
    ledger(Request(RequestType.WITHDRAW, 4, 100.0))
    logs = list((tmp_path / "audit").glob("*.log"))
    assert len(logs) == 1
    lines = logs[0].read_text(encoding="utf-8").splitlines()
    assert "user=4 action=DEPOSIT status=ok" in lines[0]
    assert "action=WITHDRAW status=failed" in lines[1]
