"""Syncs client.

One ``SyncsClient`` is one session with the relay: a single channel shared
by event pub/sub, scoped shared objects and remote calls in both
directions.

Usage:
    async with SyncsClient(SyncsConfig(path="ws://relay.local/syncs")) as client:
        client.subscribe("chat", lambda data: print(data))
        client.functions["add"] = lambda a, b: a + b

        await client.wait_online()
        client.publish("chat", {"text": "hello"})
        client.shared("profile")["name"] = "ada"
        total = await client.remote.sum(1, 2, 3)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from .bus import EventBus, EventCallback
from .callbacks import invoke_callback
from .config import SyncsConfig
from .protocol.codec import encode_frame
from .protocol.commands import Command
from .rmi import FunctionRegistry, RemoteInvocationLayer, RemoteProxy
from .router import CommandRouter, MessageListener
from .session import Session
from .shared import SharedObject, SharedStateStore
from .transport.base import ChannelFactory, TransportState
from .transport.manager import TransportManager
from .transport.mock import MockChannel
from .transport.websocket import WebSocketChannel

logger = logging.getLogger(__name__)

LifecycleCallback = Callable[["SyncsClient"], Any]


class SyncsClient:
    """Client session with a Syncs relay.

    Construction inside a running event loop with ``auto_connect`` enabled
    schedules the first connection; otherwise call ``connect()`` or use the
    client as an async context manager.
    """

    def __init__(
        self,
        config: SyncsConfig | None = None,
        channel_factory: ChannelFactory | None = None,
    ) -> None:
        self.session = Session(config=config or SyncsConfig())

        self.bus = EventBus(self.session, self.send_command)
        self.store = SharedStateStore(self.send_command, self.session.tasks)
        self.rmi = RemoteInvocationLayer(
            self.send_command,
            client=self,
            default_timeout=self.session.config.rmi_timeout,
            tasks=self.session.tasks,
        )
        self.router = CommandRouter(
            self.session,
            self.send_command,
            self.bus,
            self.store,
            self.rmi,
            on_open=self._handle_open,
        )
        self.transport = TransportManager(
            self.session,
            channel_factory or WebSocketChannel,
            on_frame=self.router.handle_frame,
            on_established=self.router.connection_established,
            on_close=self._handle_close,
            on_disconnect=self._handle_disconnect,
        )

        self._on_open: LifecycleCallback | None = None
        self._on_close: LifecycleCallback | None = None
        self._on_disconnect: LifecycleCallback | None = None
        self._online_event = asyncio.Event()
        self._connect_task: asyncio.Task[None] | None = None

        if self.session.config.auto_connect:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.debug("No running event loop; connect deferred to start")
            else:
                self._connect_task = loop.create_task(self.connect())

    # Session state

    @property
    def config(self) -> SyncsConfig:
        return self.session.config

    @property
    def socket_id(self) -> str | None:
        """Id assigned by the relay, None before the first handshake."""
        return self.session.socket_id

    @property
    def online(self) -> bool:
        """True between a completed handshake and the next close."""
        return self.session.online

    @property
    def state(self) -> TransportState:
        """Channel state."""
        return self.transport.state

    def enable_debug_mode(self) -> None:
        """Log every inbound and outbound command."""
        self.session.config.debug = True

    def disable_debug_mode(self) -> None:
        self.session.config.debug = False

    # Connection lifecycle

    async def connect(self) -> None:
        """Open the channel. No-op while online or already connecting."""
        await self.transport.connect()

    async def disconnect(self) -> None:
        """Close the channel without reconnecting."""
        if self._connect_task is not None and not self._connect_task.done():
            await self._connect_task
        await self.transport.disconnect()

    async def wait_online(self, timeout: float | None = None) -> None:
        """Wait until the handshake has completed.

        Raises:
            TimeoutError: If the session is not online within ``timeout``
        """
        if self.online:
            return
        await asyncio.wait_for(self._online_event.wait(), timeout=timeout)

    def on_open(self, callback: LifecycleCallback) -> None:
        """Set the callback for each completed handshake."""
        self._on_open = callback

    def on_close(self, callback: LifecycleCallback) -> None:
        """Set the callback for requested (or non-reconnecting) closes."""
        self._on_close = callback

    def on_disconnect(self, callback: LifecycleCallback) -> None:
        """Set the callback for unexpected closes that will reconnect."""
        self._on_disconnect = callback

    def on_message(self, listener: MessageListener) -> None:
        """Add a listener for raw (non-command) messages."""
        self.router.add_message_listener(listener)

    def _handle_open(self) -> None:
        self._online_event.set()
        if self._on_open:
            invoke_callback(
                self._on_open, self, description="open callback", tasks=self.session.tasks
            )

    def _handle_close(self) -> None:
        self._online_event.clear()
        if self._on_close:
            invoke_callback(
                self._on_close, self, description="close callback", tasks=self.session.tasks
            )

    def _handle_disconnect(self) -> None:
        self._online_event.clear()
        if self._on_disconnect:
            invoke_callback(
                self._on_disconnect,
                self,
                description="disconnect callback",
                tasks=self.session.tasks,
            )

    # Sending

    def send(self, message: Any) -> bool:
        """Send a raw application message. Only while online.

        Returns:
            True if the message was written to the channel
        """
        if not self.online:
            return False
        try:
            self.transport.send_text(encode_frame(message))
        except (ConnectionError, TypeError, ValueError) as e:
            logger.debug(f"Failed to send message: {e}")
            return False
        return True

    def send_command(self, command: Command) -> bool:
        """Send a protocol command, online or not (the handshake needs this).

        Returns:
            True if the command was written to the channel
        """
        try:
            message = command.to_wire()
            if self.session.config.debug:
                logger.info(f"⬆ OUTPUT COMMAND: {message}")
            self.transport.send_text(encode_frame(message))
        except (ConnectionError, TypeError, ValueError) as e:
            logger.debug(f"Failed to send {command.type} command: {e}")
            return False
        return True

    # Events

    def subscribe(self, event: str, callback: EventCallback) -> None:
        self.bus.subscribe(event, callback)

    def unsubscribe(self, event: str, callback: EventCallback) -> None:
        self.bus.unsubscribe(event, callback)

    def publish(self, event: str, data: Any = None) -> bool:
        """Publish an event; False (and nothing sent) while offline."""
        return self.bus.publish(event, data)

    # Shared objects

    def shared(self, name: str) -> SharedObject:
        """Writable object owned by this client."""
        return self.store.shared(name)

    def group_shared(self, group: str, name: str) -> SharedObject:
        """Read-only object shared by a group."""
        return self.store.group_shared(group, name)

    def global_shared(self, name: str) -> SharedObject:
        """Read-only object shared by every client."""
        return self.store.global_shared(name)

    # Remote calls

    @property
    def functions(self) -> FunctionRegistry:
        """Functions the relay may call on this client."""
        return self.rmi.functions

    @property
    def remote(self) -> RemoteProxy:
        """Call relay functions as attributes: ``await client.remote.name(*args)``."""
        return self.rmi.remote

    def invoke(
        self, name: str, args: list[Any] | None = None, timeout: float | None = None
    ) -> asyncio.Future[Any]:
        """Call a relay function; the future settles with its result."""
        return self.rmi.invoke(name, args, timeout=timeout)

    async def __aenter__(self) -> SyncsClient:
        if self._connect_task is not None:
            await self._connect_task
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.disconnect()


# Factory functions


def create_client(path: str | None = None, **options: Any) -> SyncsClient:
    """Create a client for a relay, reading unset options from ``SYNCS_*`` env vars.

    Args:
        path: Relay WebSocket address
        **options: Any other SyncsConfig field
    """
    if path is not None:
        options["path"] = path
    return SyncsClient(SyncsConfig.from_env(**options))


def create_test_client(
    channel: MockChannel | None = None, **options: Any
) -> tuple[SyncsClient, MockChannel]:
    """Create a client wired to an in-memory channel, for testing.

    Returns:
        The client and its channel (reused for every reconnect)
    """
    channel = channel or MockChannel()
    options.setdefault("path", "ws://test/syncs")
    options.setdefault("auto_connect", False)
    client = SyncsClient(SyncsConfig(**options), channel_factory=lambda: channel)
    return client, channel
