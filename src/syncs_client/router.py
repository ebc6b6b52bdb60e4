"""Command Router - decodes inbound frames and dispatches them.

Every inbound frame is decoded once and classified:
- command frames ({command: true, type: <known>}) go to the subsystem for
  their type, or to the handshake
- everything else is a raw message for the message listeners

Handshake (per channel establishment):
    relay  -> getSocketId
    client -> reportSocketId {socketId: <cached id or null>}
    relay  -> setSocketId {socketId}
The session is online once the relay has confirmed an id, and ``on_open``
is reported exactly once per establishment.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from .callbacks import invoke_callback
from .errors import FrameDecodeError
from .protocol.codec import decode_frame
from .protocol.commands import (
    Command,
    CommandType,
    ReportSocketIdCommand,
    is_command,
    parse_command,
)

if TYPE_CHECKING:
    from .bus import EventBus
    from .rmi import RemoteInvocationLayer
    from .session import Session
    from .shared import SharedStateStore

logger = logging.getLogger(__name__)

MessageListener = Callable[[Any], Any]


class CommandRouter:
    """Routes inbound frames for one session.

    Usage:
        router = CommandRouter(session, send_command, bus, store, rmi, on_open)
        router.handle_frame(frame)
    """

    def __init__(
        self,
        session: Session,
        send_command: Callable[[Command], bool],
        bus: EventBus,
        store: SharedStateStore,
        rmi: RemoteInvocationLayer,
        on_open: Callable[[], None],
    ) -> None:
        self._session = session
        self._send_command = send_command
        self._bus = bus
        self._store = store
        self._rmi = rmi
        self._on_open = on_open
        self._message_listeners: list[MessageListener] = []
        self._open_reported = False

    def add_message_listener(self, listener: MessageListener) -> None:
        """Register a listener for raw (non-command) messages."""
        self._message_listeners.append(listener)

    def connection_established(self) -> None:
        """A new channel is open; the next handshake reports ``on_open`` again."""
        self._open_reported = False

    def handle_frame(self, frame: str) -> None:
        """Decode, classify and dispatch one inbound frame."""
        debug = self._session.config.debug

        try:
            message = decode_frame(frame)
        except FrameDecodeError as e:
            if debug:
                logger.info(f"Dropping undecodable frame: {e}")
            return

        if not is_command(message):
            for listener in list(self._message_listeners):
                invoke_callback(
                    listener, message, description="message listener", tasks=self._session.tasks
                )
            return

        if debug:
            logger.info(f"⬇ INPUT COMMAND: {message}")

        try:
            command = parse_command(message)
        except ValidationError as e:
            if debug:
                logger.info(f"Dropping malformed '{message.get('type')}' command: {e}")
            call_id = message.get("id")
            if message.get("type") == CommandType.RMI.value and isinstance(call_id, str):
                # The caller still waits on this id
                self._rmi.reject_call(call_id)
            return

        self.dispatch(command)

    def dispatch(self, command: Command) -> None:
        """Route a validated command to its handler."""
        match command.type:
            # Handshake
            case CommandType.GET_SOCKET_ID.value:
                self._handle_get_socket_id()

            case CommandType.SET_SOCKET_ID.value:
                self._handle_set_socket_id(command.socket_id)  # type: ignore[attr-defined]

            # Subsystems
            case CommandType.EVENT.value:
                self._bus.handle_event(command)  # type: ignore[arg-type]

            case CommandType.SYNC.value:
                self._store.apply_sync(command)  # type: ignore[arg-type]

            case CommandType.RMI.value:
                self._rmi.handle_call(command)  # type: ignore[arg-type]

            case CommandType.RMI_RESULT.value:
                self._rmi.handle_result(command)  # type: ignore[arg-type]

            case _:
                # reportSocketId only travels client -> relay
                logger.debug(f"Ignoring command of type {command.type}")

    def _handle_get_socket_id(self) -> None:
        socket_id = self._session.socket_id
        self._send_command(ReportSocketIdCommand(socket_id=socket_id))
        if socket_id:
            # Resuming a known session; the relay accepts the cached id
            self._session.online = True
            self._report_open()

    def _handle_set_socket_id(self, socket_id: str) -> None:
        self._session.socket_id = socket_id
        self._session.online = True
        logger.info(f"Session id set: {socket_id}")
        self._report_open()

    def _report_open(self) -> None:
        if self._open_reported:
            return
        self._open_reported = True
        self._on_open()
