"""Channel abstraction.

A channel is one duplex text connection to the relay. The transport
manager owns at most one at a time and drives it through this interface:

- open(address): establish the connection
- send(text): enqueue one frame (non-blocking, FIFO)
- close(): close the connection
- frames(): async iterator of inbound frames, ending when the channel closes

Errors never surface separately: a failed or dropped channel simply ends
``frames()``, which the manager treats as the close event.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from enum import Enum


class TransportState(str, Enum):
    """Connection state machine."""

    CLOSED = "closed"
    CONNECTING = "connecting"
    OPEN = "open"


class Channel(ABC):
    """Base class for duplex text channels."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Check if the channel can send."""
        ...

    @abstractmethod
    async def open(self, address: str) -> None:
        """Connect to the relay.

        Raises:
            ConnectionError: If the connection cannot be established
        """
        ...

    @abstractmethod
    def send(self, text: str) -> None:
        """Enqueue a frame for sending.

        Raises:
            ConnectionError: If the channel is not open
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the channel. ``frames()`` ends afterwards."""
        ...

    @abstractmethod
    def frames(self) -> AsyncIterator[str]:
        """Inbound frames until the channel closes. Must be an async generator."""
        ...


# Creates a fresh, unopened channel for each connection attempt
ChannelFactory = Callable[[], Channel]
