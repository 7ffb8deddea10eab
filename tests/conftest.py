from __future__ import annotations

import threading

import pytest

from ledgerlink.ledger import FinanceLedger
from ledgerlink.net.channel import open_as_server
from ledgerlink.net.server import ChannelServer


@pytest.fixture
def listener():
    lst = open_as_server("127.0.0.1", 0)
    yield lst
    lst.close()


@pytest.fixture
def ledger(tmp_path):
    return FinanceLedger(tmp_path / "files")


@pytest.fixture
def running_server(listener, ledger):
    server = ChannelServer(listener, ledger)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown(timeout=2.0)
    thread.join(2.0)


class ChunkySocket:
    """Socket wrapper that moves at most ``chunk`` bytes per call."""

    def __init__(self, sock, chunk: int) -> None:
        self.sock = sock
        self.chunk = chunk
        self.send_calls = 0
        self.recv_calls = 0

    def send(self, data) -> int:
        self.send_calls += 1
        return self.sock.send(data[: self.chunk])

    def recv_into(self, buffer, nbytes: int = 0) -> int:
        self.recv_calls += 1
        nbytes = min(nbytes or len(buffer), self.chunk)
        return self.sock.recv_into(buffer, nbytes)


@pytest.fixture
def chunky():
    return ChunkySocket
