"""LedgerLink: framed request/response channel for a small finance service."""

from .errors import (
    AcceptError,
    ChannelError,
    ChannelIOError,
    ConnectionSetupError,
    EncodingError,
    FailureKind,
    FrameTooLarge,
    MalformedMessage,
)
from .net.channel import Channel, ChannelState, ListeningChannel, open_as_client, open_as_server
from .proto.messages import Request, RequestType, Response

__all__ = [
    "AcceptError",
    "Channel",
    "ChannelError",
    "ChannelIOError",
    "ChannelState",
    "ConnectionSetupError",
    "EncodingError",
    "FailureKind",
    "FrameTooLarge",
    "ListeningChannel",
    "MalformedMessage",
    "Request",
    "RequestType",
    "Response",
    "open_as_client",
    "open_as_server",
]

__version__ = "0.1.0"
