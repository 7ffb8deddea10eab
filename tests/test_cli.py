from __future__ import annotations

import pytest

from ledgerlink.cli import build_parser, main
from ledgerlink.net.channel import open_as_server


def test_parser_request_arguments():
    args = build_parser().parse_args(
        ["request", "--port", "9100", "deposit", "--user-id", "3", "--amount", "12.5"]
    )
    assert args.type == "deposit"
    assert args.port == 9100
    assert args.user_id == 3
    assert args.amount == 12.5


def test_parser_rejects_unknown_type():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["request", "transfer"])


def test_check_with_defaults(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert main(["check"]) == 0
    assert "Configuration check passed." in capsys.readouterr().out


def test_check_reports_bad_config(tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("server: {port: -1}\n", encoding="utf-8")
    assert main(["check", "--config", str(bad)]) == 1


def test_request_against_running_server(running_server, listener, tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    port = str(listener.port)
    assert main(["request", "--host", "127.0.0.1", "--port", port, "deposit", "--user-id", "5", "--amount", "7.5"]) == 0
    out = capsys.readouterr().out
    assert "success: True" in out
    assert "balance: 7.5" in out
    assert main(["request", "--host", "127.0.0.1", "--port", port, "withdraw", "--user-id", "5", "--amount", "100"]) == 1
    assert "Insufficient funds" in capsys.readouterr().out


def test_request_connection_refused(tmp_path, monkeypatch):
    lst = open_as_server("127.0.0.1", 0)
    port = lst.port
    lst.close()
    monkeypatch.chdir(tmp_path)
    assert main(["request", "--host", "127.0.0.1", "--port", str(port), "balance"]) == 1
