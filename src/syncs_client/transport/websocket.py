"""WebSocket channel.

Full-duplex channel to the relay built on the ``websockets`` client.
Outbound frames go through a FIFO outbox drained by a writer task, so
``send`` stays synchronous and preserves caller order.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from typing import Any

import websockets
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

from .base import Channel

logger = logging.getLogger(__name__)


class WebSocketChannel(Channel):
    """Client-side WebSocket channel."""

    def __init__(self, ping_interval: float | None = 30, ping_timeout: float | None = 10):
        self._ping_interval = ping_interval
        self._ping_timeout = ping_timeout
        self._ws: Any = None  # websockets ClientConnection
        self._outbox: asyncio.Queue[str | None] = asyncio.Queue()
        self._writer_task: asyncio.Task[None] | None = None
        self._closing = False

    @property
    def is_open(self) -> bool:
        return self._ws is not None and not self._closing

    async def open(self, address: str) -> None:
        """Connect to the relay WebSocket."""
        try:
            self._ws = await websockets.connect(
                address,
                ping_interval=self._ping_interval,
                ping_timeout=self._ping_timeout,
            )
        except (OSError, InvalidHandshake, InvalidURI) as e:
            raise ConnectionError(f"Failed to connect to {address}: {e}") from e

        self._writer_task = asyncio.create_task(self._write_loop())
        logger.info(f"WebSocket connected to {address}")

    def send(self, text: str) -> None:
        if not self.is_open:
            raise ConnectionError("WebSocket not connected")
        self._outbox.put_nowait(text)

    async def close(self) -> None:
        """Flush queued frames, then close the connection."""
        if self._ws is None or self._closing:
            return
        self._closing = True

        if self._writer_task:
            self._outbox.put_nowait(None)
            with contextlib.suppress(Exception):
                await self._writer_task

        await self._ws.close()

    async def frames(self) -> AsyncIterator[str]:
        if self._ws is None:
            raise ConnectionError("WebSocket not connected")

        try:
            async for data in self._ws:
                if isinstance(data, bytes):
                    data = data.decode("utf-8", errors="replace")
                yield data
        except ConnectionClosed as e:
            logger.debug(f"WebSocket closed: {e}")
        finally:
            self._closing = True
            if self._writer_task and not self._writer_task.done():
                self._writer_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._writer_task

    async def _write_loop(self) -> None:
        """Background task sending queued frames in order."""
        try:
            while True:
                text = await self._outbox.get()
                if text is None:
                    break
                await self._ws.send(text)
        except ConnectionClosed as e:
            logger.debug(f"WebSocket closed while sending: {e}")
