"""Socket channels, framing and the accept supervisor."""

from .channel import Channel, ChannelState, ListeningChannel, open_as_client, open_as_server
from .server import ChannelServer, serve_channel

__all__ = [
    "Channel",
    "ChannelServer",
    "ChannelState",
    "ListeningChannel",
    "open_as_client",
    "open_as_server",
    "serve_channel",
]
