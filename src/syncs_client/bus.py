"""Event Bus - named pub/sub over the relay channel.

Local callbacks subscribe to event names; inbound ``event`` commands fan out
to them. Publishing sends one ``event`` command to the relay, and only while
the session is online. Nothing is buffered offline.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from .callbacks import invoke_callback
from .protocol.commands import Command, EventCommand

if TYPE_CHECKING:
    from .session import Session

logger = logging.getLogger(__name__)

# Type for event callbacks
EventCallback = Callable[[Any], Any]


class EventBus:
    """Named event subscriptions for one session.

    Each event name maps to an insertion-ordered set of callbacks. Adding the
    same callback twice keeps one entry; callbacks are compared by identity.
    """

    def __init__(self, session: Session, send_command: Callable[[Command], bool]) -> None:
        self._session = session
        self._send_command = send_command
        self._subscriptions: dict[str, dict[EventCallback, None]] = {}

    def subscribe(self, event: str, callback: EventCallback) -> None:
        """Subscribe a callback to an event name.

        Args:
            event: Event name
            callback: Called with the event's data; may be a coroutine function
        """
        self._subscriptions.setdefault(event, {})[callback] = None

    def unsubscribe(self, event: str, callback: EventCallback) -> None:
        """Remove a callback from an event. No-op if it was never subscribed."""
        subscribers = self._subscriptions.get(event)
        if subscribers is None:
            return
        subscribers.pop(callback, None)

    def subscribers(self, event: str) -> list[EventCallback]:
        """Snapshot of the callbacks subscribed to an event."""
        return list(self._subscriptions.get(event, ()))

    def publish(self, event: str, data: Any = None) -> bool:
        """Publish an event to the relay.

        Returns:
            True if the event command was sent, False when offline or the
            send failed
        """
        if not self._session.online:
            logger.debug(f"Dropping event '{event}': session offline")
            return False
        return self._send_command(EventCommand(event=str(event), data=data))

    def handle_event(self, command: EventCommand) -> None:
        """Deliver an inbound event command to its subscribers."""
        if not command.event:
            return
        # Copy so callbacks can unsubscribe while being notified
        for callback in list(self._subscriptions.get(command.event, ())):
            invoke_callback(
                callback,
                command.data,
                description=f"subscriber for '{command.event}'",
                tasks=self._session.tasks,
            )
