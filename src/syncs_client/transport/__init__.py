"""Transport layer.

Channel abstraction plus the manager that owns the session's channel:
- WebSocket - the production channel to the relay
- Mock - in-memory channel for tests

The manager runs the connection state machine and the reconnection
policy; the channel only moves text frames.
"""

from .base import Channel, ChannelFactory, TransportState
from .manager import TransportManager
from .mock import MockChannel
from .websocket import WebSocketChannel

__all__ = [
    "Channel",
    "ChannelFactory",
    "TransportState",
    "TransportManager",
    "MockChannel",
    "WebSocketChannel",
]
