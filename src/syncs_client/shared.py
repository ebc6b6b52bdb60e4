"""Shared state - scoped key/value objects kept in sync with the relay.

Three independent namespaces:
- GLOBAL: one object per name, shared by every client (read-only here)
- GROUP: one object per (group, name), shared by a group (read-only here)
- CLIENT: one object per name, owned by this client (writable)

Local writes to CLIENT objects are sent to the relay as ``sync`` commands.
Inbound ``sync`` commands are merged key by key (last write wins) and
reported to the object's change handler once per command.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any, Literal

from .callbacks import invoke_callback
from .errors import ReadOnlyError
from .protocol.commands import Command, Scope, SyncCommand

logger = logging.getLogger(__name__)

Origin = Literal["client", "server"]


@dataclass
class ChangeEvent:
    """Keys changed by one update, and who made it."""

    values: dict[str, Any]
    origin: Origin


ChangeHandler = Callable[[ChangeEvent], Any]


@dataclass(eq=False)
class SharedObject:
    """Handle to one shared object.

    Use ``get``/``set``/``on_change``; item access is sugar over the first two.
    """

    name: str
    scope: Scope
    _send_command: Callable[[Command], bool] = field(repr=False)
    group: str | None = None
    _data: dict[str, Any] = field(default_factory=dict, repr=False)
    _handler: ChangeHandler | None = field(default=None, repr=False)
    _tasks: set[asyncio.Task[Any]] = field(default_factory=set, repr=False)

    @property
    def read_only(self) -> bool:
        return self.scope != Scope.CLIENT

    def get(self, key: str, default: Any = None) -> Any:
        """Read a key; unset keys return ``default`` (None)."""
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Write a key on a CLIENT object and sync it to the relay.

        Raises:
            ReadOnlyError: If the object is GLOBAL or GROUP scoped
        """
        if self.read_only:
            raise ReadOnlyError(Scope(self.scope).value, self.name, key)

        self._data[key] = value
        self._notify({key: value}, "client")
        self._send_command(
            SyncCommand(scope=Scope.CLIENT, name=self.name, key=key, value=value)
        )

    def on_change(self, handler: ChangeHandler) -> SharedObject:
        """Register the change handler, replacing any previous one."""
        self._handler = handler
        return self

    def apply(self, values: dict[str, Any]) -> None:
        """Merge an update from the relay and notify once."""
        if not values:
            return
        self._data.update(values)
        self._notify(dict(values), "server")

    def to_dict(self) -> dict[str, Any]:
        """Snapshot of the current values."""
        return dict(self._data)

    def _notify(self, values: dict[str, Any], origin: Origin) -> None:
        if self._handler is None:
            return
        invoke_callback(
            self._handler,
            ChangeEvent(values=values, origin=origin),
            description=f"change handler for {self.scope} '{self.name}'",
            tasks=self._tasks,
        )

    def __getitem__(self, key: str) -> Any:
        return self.get(key)

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._data))

    def __len__(self) -> int:
        return len(self._data)


class SharedStateStore:
    """All shared objects of one session, by scope."""

    def __init__(
        self,
        send_command: Callable[[Command], bool],
        tasks: set[asyncio.Task[Any]] | None = None,
    ) -> None:
        self._send_command = send_command
        self._tasks = tasks if tasks is not None else set()
        self._global: dict[str, SharedObject] = {}
        self._groups: dict[str, dict[str, SharedObject]] = {}
        self._client: dict[str, SharedObject] = {}

    def shared(self, name: str) -> SharedObject:
        """Client-scoped object, created empty on first access."""
        obj = self._client.get(name)
        if obj is None:
            obj = self._client[name] = SharedObject(
                name, Scope.CLIENT, self._send_command, _tasks=self._tasks
            )
        return obj

    def group_shared(self, group: str, name: str) -> SharedObject:
        """Group-scoped object, created empty on first access."""
        objects = self._groups.setdefault(group, {})
        obj = objects.get(name)
        if obj is None:
            obj = objects[name] = SharedObject(
                name, Scope.GROUP, self._send_command, group=group, _tasks=self._tasks
            )
        return obj

    def global_shared(self, name: str) -> SharedObject:
        """Global object, created empty on first access."""
        obj = self._global.get(name)
        if obj is None:
            obj = self._global[name] = SharedObject(
                name, Scope.GLOBAL, self._send_command, _tasks=self._tasks
            )
        return obj

    def apply_sync(self, command: SyncCommand) -> None:
        """Reconcile an inbound sync command into the matching object."""
        match command.scope:
            case Scope.GLOBAL:
                obj = self.global_shared(command.name)
            case Scope.GROUP:
                if command.group is None:
                    logger.debug(f"Ignoring GROUP sync for '{command.name}' without group")
                    return
                obj = self.group_shared(command.group, command.name)
            case Scope.CLIENT:
                obj = self.shared(command.name)
            case _:
                logger.debug(f"Ignoring sync with unknown scope: {command.scope}")
                return

        obj.apply(command.changed_values())
