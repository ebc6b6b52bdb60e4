"""Transport manager - channel ownership and reconnection policy.

State machine:

    CLOSED --connect()--> CONNECTING --open ok--> OPEN --channel ends--> CLOSED
                               |
                               +--open failed--> CLOSED

Every transition into CLOSED is a close event. A close the application
asked for (``disconnect()``), or any close while auto-reconnect is off,
reports ``on_close``. Any other close reports ``on_disconnect`` and schedules
a reconnect after the configured delay.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from .base import Channel, ChannelFactory, TransportState

if TYPE_CHECKING:
    from ..session import Session

logger = logging.getLogger(__name__)


class TransportManager:
    """Owns the single channel of a session.

    Inbound frames are handed to ``on_frame`` one at a time, in arrival
    order, from a background reader task.
    """

    def __init__(
        self,
        session: Session,
        channel_factory: ChannelFactory,
        on_frame: Callable[[str], None],
        on_established: Callable[[], None],
        on_close: Callable[[], None],
        on_disconnect: Callable[[], None],
    ) -> None:
        self._session = session
        self._channel_factory = channel_factory
        self._on_frame = on_frame
        self._on_established = on_established
        self._on_close = on_close
        self._on_disconnect = on_disconnect

        self._state = TransportState.CLOSED
        self._channel: Channel | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._opening: asyncio.Future[None] | None = None
        self._explicit_close = False

    @property
    def state(self) -> TransportState:
        """Current connection state."""
        return self._state

    @property
    def is_open(self) -> bool:
        """Check if a channel is open for sending."""
        return self._state == TransportState.OPEN

    @property
    def reconnect_pending(self) -> bool:
        """Check if an automatic reconnect is scheduled."""
        return self._reconnect_handle is not None

    async def connect(self) -> None:
        """Open a channel to the configured path.

        No-op while the session is online or a channel is already opening
        or open.
        """
        if self._session.online or self._state != TransportState.CLOSED:
            return

        self._cancel_reconnect()
        self._state = TransportState.CONNECTING
        opening = asyncio.get_running_loop().create_future()
        self._opening = opening
        try:
            await self._open_channel(self._channel_factory(), self._session.config.path)
        finally:
            self._opening = None
            if not opening.done():
                opening.set_result(None)

    async def _open_channel(self, channel: Channel, path: str) -> None:
        try:
            await channel.open(path)
        except Exception as e:
            logger.warning(f"Failed to connect to {path}: {e}")
            self._handle_close()
            return

        if self._explicit_close:
            # disconnect() was requested while the channel was opening
            await channel.close()
            self._handle_close()
            return

        self._channel = channel
        self._state = TransportState.OPEN
        logger.info(f"Channel open to {path}")

        self._on_established()
        self._reader_task = asyncio.create_task(self._read_loop(channel))

    async def disconnect(self) -> None:
        """Close the channel and suppress automatic reconnection.

        Waits until the close has been reported through ``on_close``. While a
        reconnect is pending, cancels it and reports ``on_close``. While a
        connect is in flight, waits for it to observe the request.
        """
        if self._state == TransportState.CLOSED:
            if self._reconnect_handle is not None:
                self._cancel_reconnect()
                logger.info("Pending reconnect cancelled")
                self._on_close()
            return

        self._explicit_close = True
        if self._state == TransportState.CONNECTING and self._opening is not None:
            # connect() sees the flag once open() returns and reports the close
            await asyncio.shield(self._opening)
            return

        if self._channel is not None:
            await self._channel.close()

        task = self._reader_task
        if task is not None and task is not asyncio.current_task():
            await asyncio.shield(task)

    def send_text(self, text: str) -> None:
        """Write one frame to the open channel.

        Raises:
            ConnectionError: If no channel is open
        """
        channel = self._channel
        if channel is None or not channel.is_open:
            raise ConnectionError("Channel not open")
        channel.send(text)

    async def _read_loop(self, channel: Channel) -> None:
        """Background task feeding inbound frames to the router."""
        try:
            async for frame in channel.frames():
                try:
                    self._on_frame(frame)
                except Exception:
                    logger.exception("Error handling inbound frame")
        except asyncio.CancelledError:
            self._reset()
            raise
        except Exception as e:
            logger.warning(f"Channel read error: {e}")

        self._reader_task = None
        self._handle_close()

    def _reset(self) -> None:
        self._state = TransportState.CLOSED
        self._channel = None
        self._session.online = False

    def _handle_close(self) -> None:
        """Process a close event per the reconnection policy."""
        self._reset()
        config = self._session.config

        if self._explicit_close or not config.auto_reconnect:
            self._explicit_close = False
            logger.info("Channel closed")
            self._on_close()
            return

        logger.warning(f"Channel lost, reconnecting in {config.reconnect_delay}s")
        loop = asyncio.get_running_loop()
        self._reconnect_handle = loop.call_later(config.reconnect_delay, self._reconnect)
        self._on_disconnect()

    def _reconnect(self) -> None:
        self._reconnect_handle = None
        if self._session.online:
            return
        logger.info("Reconnecting")
        self._reconnect_task = asyncio.ensure_future(self.connect())
        self._reconnect_task.add_done_callback(self._reconnect_done)

    def _reconnect_done(self, task: asyncio.Future[Any]) -> None:
        self._reconnect_task = None
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Reconnect failed: {task.exception()!r}")

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None
