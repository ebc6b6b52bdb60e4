"""Syncs client - asyncio runtime for the Syncs relay protocol.

Provides, over one WebSocket to the relay:
- Event pub/sub: subscribe / publish named events
- Shared state: GLOBAL, GROUP and CLIENT scoped key/value objects
- Remote calls: relay -> client functions and client -> relay invocation
"""

from .bus import EventBus
from .client import SyncsClient, create_client, create_test_client
from .config import SyncsConfig
from .errors import (
    FrameDecodeError,
    NotConnectedError,
    ReadOnlyError,
    RemoteCallError,
    SyncsError,
)
from .protocol.commands import Scope
from .rmi import FunctionRegistry, RemoteInvocationLayer, current_client
from .router import CommandRouter
from .session import Session
from .shared import ChangeEvent, SharedObject, SharedStateStore
from .transport import MockChannel, TransportManager, TransportState, WebSocketChannel

__all__ = [
    # Client
    "SyncsClient",
    "SyncsConfig",
    "Session",
    "create_client",
    "create_test_client",
    # Subsystems
    "EventBus",
    "SharedStateStore",
    "SharedObject",
    "ChangeEvent",
    "Scope",
    "RemoteInvocationLayer",
    "FunctionRegistry",
    "current_client",
    "CommandRouter",
    # Transport
    "TransportManager",
    "TransportState",
    "WebSocketChannel",
    "MockChannel",
    # Errors
    "SyncsError",
    "ReadOnlyError",
    "RemoteCallError",
    "NotConnectedError",
    "FrameDecodeError",
]
