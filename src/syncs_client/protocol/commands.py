"""Command definitions for the protocol layer.

Commands are the protocol traffic on the shared channel. Every command is a
JSON object tagged with ``command: true`` and a ``type``; anything without
that pair is a raw application message.

Example:
    {
        "command": true,
        "type": "rmi",
        "id": "1f0a9c3e-77b2-4d1e-9a0b-c2d4e6f80123",
        "name": "add",
        "args": [2, 3]
    }
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class CommandType(str, Enum):
    """All supported command types."""

    # Handshake
    GET_SOCKET_ID = "getSocketId"
    SET_SOCKET_ID = "setSocketId"
    REPORT_SOCKET_ID = "reportSocketId"

    # Pub/sub
    EVENT = "event"

    # Shared state
    SYNC = "sync"

    # Remote invocation
    RMI = "rmi"
    RMI_RESULT = "rmi-result"


COMMAND_TYPES = frozenset(t.value for t in CommandType)


class Scope(str, Enum):
    """Shared object scopes."""

    GLOBAL = "GLOBAL"
    GROUP = "GROUP"
    CLIENT = "CLIENT"


class Command(BaseModel):
    """Base command envelope.

    Subclasses pin ``type`` to a literal. Unknown extra fields are kept so
    that newer peers can add fields without breaking older clients.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow", use_enum_values=True)

    command: bool = True
    type: str

    def to_wire(self) -> dict[str, Any]:
        """Return the JSON-ready dict for this command.

        Only fields that were explicitly set are included, so an outbound
        CLIENT sync carries ``key``/``value`` and no empty ``values`` map.
        """
        data = self.model_dump(by_alias=True, exclude_unset=True)
        data.pop("command", None)
        data.pop("type", None)
        return {"command": True, "type": self.type, **data}


class GetSocketIdCommand(Command):
    """Peer asks the client which id it had before (start of handshake)."""

    type: Literal["getSocketId"] = "getSocketId"


class SetSocketIdCommand(Command):
    """Peer assigns or confirms the session id."""

    type: Literal["setSocketId"] = "setSocketId"
    socket_id: str = Field(alias="socketId")


class ReportSocketIdCommand(Command):
    """Client reports its cached id, or null on first connect."""

    type: Literal["reportSocketId"] = "reportSocketId"
    socket_id: str | None = Field(default=None, alias="socketId")


class EventCommand(Command):
    """Named event with an arbitrary payload."""

    type: Literal["event"] = "event"
    event: str
    data: Any = None


class SyncCommand(Command):
    """Shared object update.

    Outbound CLIENT updates use ``key``/``value``; inbound updates usually
    carry a ``values`` map. Both shapes are accepted.
    """

    type: Literal["sync"] = "sync"
    scope: Scope
    name: str
    group: str | None = None
    values: dict[str, Any] | None = None
    key: str | None = None
    value: Any = None

    def changed_values(self) -> dict[str, Any]:
        """Merge both update shapes into one key/value map."""
        changes: dict[str, Any] = dict(self.values or {})
        if self.key is not None:
            changes[self.key] = self.value
        return changes


class RmiCommand(Command):
    """Remote function call."""

    type: Literal["rmi"] = "rmi"
    id: str
    name: str
    args: list[Any] = Field(default_factory=list)


class RmiResultCommand(Command):
    """Result of a remote function call."""

    type: Literal["rmi-result"] = "rmi-result"
    id: str
    result: Any = None
    error: str | None = None


AnyCommand = Annotated[
    GetSocketIdCommand
    | SetSocketIdCommand
    | ReportSocketIdCommand
    | EventCommand
    | SyncCommand
    | RmiCommand
    | RmiResultCommand,
    Field(discriminator="type"),
]

_command_adapter: TypeAdapter[Command] = TypeAdapter(AnyCommand)


def is_command(message: Any) -> bool:
    """Check whether a decoded frame carries the command marker and a known type."""
    return (
        isinstance(message, dict)
        and bool(message.get("command"))
        and message.get("type") in COMMAND_TYPES
    )


def parse_command(message: dict[str, Any]) -> Command:
    """Validate a decoded command frame into its typed model.

    Raises:
        pydantic.ValidationError: If required fields are missing or malformed
    """
    return _command_adapter.validate_python(message)
