from __future__ import annotations

import socket
import struct

import pytest

from ledgerlink.errors import ChannelIOError, FailureKind, FrameTooLarge
from ledgerlink.net.framing import read_frame, write_frame


@pytest.fixture
def pair():
    a, b = socket.socketpair()
    yield a, b
    a.close()
    b.close()


def test_frame_roundtrip(pair):
    a, b = pair
    write_frame(a, b"hello")
    assert read_frame(b) == b"hello"


def test_wire_layout_is_big_endian_length_then_payload(pair):
    a, b = pair
    write_frame(a, b"abc")
    assert b.recv(16) == b"\x00\x00\x00\x03abc"


def test_empty_frame(pair):
    a, b = pair
    write_frame(a, b"")
    write_frame(a, b"next")
    assert read_frame(b) == b""
    assert read_frame(b) == b"next"


def test_short_reads_and_writes(pair, chunky):
    a, b = pair
    payload = bytes(range(256)) * 4
    writer = chunky(a, 1)
    reader = chunky(b, 3)
    write_frame(writer, payload, max_size=1024)
    assert read_frame(reader, max_size=1024) == payload
    assert writer.send_calls == 4 + len(payload)
    assert reader.recv_calls > len(payload) // 3


def test_back_to_back_frames_keep_boundaries(pair, chunky):
    a, b = pair
    for chunk in (b"one", b"two", b"three"):
        write_frame(a, chunk)
    reader = chunky(b, 2)
    assert [read_frame(reader) for _ in range(3)] == [b"one", b"two", b"three"]


def test_oversize_header_is_rejected(pair):
    a, b = pair
    a.sendall(struct.pack("!I", 2000) + b"x" * 10)
    with pytest.raises(FrameTooLarge) as info:
        read_frame(b, max_size=1024)
    assert info.value.kind is FailureKind.OVERSIZE
    assert info.value.length == 2000
    assert info.value.limit == 1024


def test_oversize_payload_is_not_sent(pair):
    a, b = pair
    with pytest.raises(FrameTooLarge):
        write_frame(a, b"x" * 11, max_size=10)
    b.setblocking(False)
    with pytest.raises(BlockingIOError):
        b.recv(16)


def test_frame_at_limit_is_accepted(pair):
    a, b = pair
    write_frame(a, b"y" * 10, max_size=10)
    assert read_frame(b, max_size=10) == b"y" * 10


def test_peer_closed_before_header(pair):
    a, b = pair
    a.close()
    with pytest.raises(ChannelIOError) as info:
        read_frame(b)
    assert info.value.kind is FailureKind.PEER_CLOSED


def test_partial_header_then_close(pair):
    a, b = pair
    a.sendall(b"\x00\x00")
    a.close()
    with pytest.raises(ChannelIOError) as info:
        read_frame(b)
    assert info.value.kind is FailureKind.PEER_CLOSED
    assert "frame length" in str(info.value)


def test_truncated_payload(pair):
    a, b = pair
    a.sendall(struct.pack("!I", 10) + b"abc")
    a.close()
    with pytest.raises(ChannelIOError) as info:
        read_frame(b)
    assert info.value.kind is FailureKind.PEER_CLOSED
    assert "3/10" in str(info.value)


def test_read_timeout(pair):
    _, b = pair
    b.settimeout(0.05)
    with pytest.raises(ChannelIOError) as info:
        read_frame(b)
    assert info.value.kind is FailureKind.TIMEOUT


def test_send_failure_is_io_error(pair):
    a, _ = pair
    a.close()
    with pytest.raises(ChannelIOError) as info:
        write_frame(a, b"data")
    assert info.value.kind is FailureKind.IO
