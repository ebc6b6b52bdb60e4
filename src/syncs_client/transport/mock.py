"""Mock channel for testing.

Records outbound frames and lets tests feed inbound frames or simulate a
relay-side drop. No actual I/O - everything is in-memory.

Usage:
    channel = MockChannel()
    client = SyncsClient(config, channel_factory=lambda: channel)
    await client.connect()

    channel.feed_json({"command": True, "type": "setSocketId", "socketId": "abc"})
    channel.drop()

    assert channel.sent_messages[0]["type"] == "reportSocketId"
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any

from ..protocol.codec import decode_frame, encode_frame
from .base import Channel


class MockChannel(Channel):
    """In-memory channel."""

    def __init__(self, fail_open: bool = False) -> None:
        self.fail_open = fail_open
        self.address: str | None = None
        self._sent: list[str] = []
        self._inbound: asyncio.Queue[str | None] = asyncio.Queue()
        self._open = False
        self.close_calls = 0

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def sent_frames(self) -> list[str]:
        """Raw frames sent through this channel."""
        return self._sent.copy()

    @property
    def sent_messages(self) -> list[Any]:
        """Sent frames, decoded."""
        return [decode_frame(frame) for frame in self._sent]

    def feed(self, frame: str) -> None:
        """Queue a raw inbound frame."""
        self._inbound.put_nowait(frame)

    def feed_json(self, message: Any) -> None:
        """Queue an inbound frame built from a JSON value."""
        self.feed(encode_frame(message))

    def drop(self) -> None:
        """Simulate the relay closing the connection."""
        self._open = False
        self._inbound.put_nowait(None)

    def clear(self) -> None:
        """Forget recorded frames."""
        self._sent.clear()

    async def open(self, address: str) -> None:
        self.address = address
        if self.fail_open:
            raise ConnectionError(f"Mock connection to {address} refused")
        self._open = True

    def send(self, text: str) -> None:
        if not self._open:
            raise ConnectionError("Mock channel not open")
        self._sent.append(text)

    async def close(self) -> None:
        self.close_calls += 1
        if self._open:
            self.drop()

    async def frames(self) -> AsyncIterator[str]:
        while True:
            frame = await self._inbound.get()
            if frame is None:
                break
            yield frame
