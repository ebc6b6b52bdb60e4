"""Remote method invocation in both directions.

Inbound: the relay calls a function registered in ``functions`` and gets
exactly one ``rmi-result`` back.

Outbound: ``invoke(name, args)`` sends an ``rmi`` command and returns a
future that settles when the ``rmi-result`` with the same id arrives.
Results are correlated through a pending-call table keyed by call id.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import random
from collections.abc import Callable, Iterator, MutableMapping
from contextvars import ContextVar
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .errors import NotConnectedError, RemoteCallError
from .protocol.commands import Command, RmiCommand, RmiResultCommand

if TYPE_CHECKING:
    from .client import SyncsClient

logger = logging.getLogger(__name__)

# Error strings understood by the relay
ERROR_UNDEFINED = "undefined"
ERROR_FUNCTION = "function error"

# Client whose registered function is currently running (async-safe)
current_client: ContextVar[SyncsClient | None] = ContextVar("current_client", default=None)


def generate_call_id() -> str:
    """Random 36-char call id made of eight 16-bit hex groups."""
    groups = [f"{random.getrandbits(16):04x}" for _ in range(8)]
    return (
        f"{groups[0]}{groups[1]}-{groups[2]}-{groups[3]}-{groups[4]}-"
        f"{groups[5]}{groups[6]}{groups[7]}"
    )


class FunctionRegistry(MutableMapping[str, Callable[..., Any]]):
    """Functions the relay may call on this client.

    Usage:
        client.functions["add"] = lambda a, b: a + b

        @client.functions.register()
        async def fetch_status():
            return {"ok": True}
    """

    def __init__(self) -> None:
        self._functions: dict[str, Callable[..., Any]] = {}

    def register(
        self, name: str | None = None
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator registering a function under ``name`` (default: its __name__)."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self[name or func.__name__] = func
            return func

        return decorator

    def __getitem__(self, name: str) -> Callable[..., Any]:
        return self._functions[name]

    def __setitem__(self, name: str, func: Callable[..., Any]) -> None:
        if not callable(func):
            raise TypeError(f"Remote function '{name}' must be callable")
        self._functions[name] = func

    def __delitem__(self, name: str) -> None:
        del self._functions[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._functions)

    def __len__(self) -> int:
        return len(self._functions)


@dataclass
class PendingCall:
    """An outbound call waiting for its result."""

    id: str
    name: str
    future: asyncio.Future[Any]


class RemoteProxy:
    """Attribute-style veneer over ``invoke``.

    ``await client.remote.add(2, 3)`` is ``await client.invoke("add", [2, 3])``.
    """

    def __init__(self, layer: RemoteInvocationLayer) -> None:
        self._layer = layer

    def __getattr__(self, name: str) -> Callable[..., asyncio.Future[Any]]:
        if name.startswith("_"):
            raise AttributeError(name)

        def call(*args: Any) -> asyncio.Future[Any]:
            return self._layer.invoke(name, list(args))

        call.__name__ = name
        return call


class RemoteInvocationLayer:
    """Function registry, pending-call table and both RPC directions."""

    def __init__(
        self,
        send_command: Callable[[Command], bool],
        client: SyncsClient | None = None,
        default_timeout: float | None = None,
        tasks: set[asyncio.Task[Any]] | None = None,
    ) -> None:
        self._send_command = send_command
        self._client = client
        self._default_timeout = default_timeout
        self.functions = FunctionRegistry()
        self._pending: dict[str, PendingCall] = {}
        self._tasks = tasks if tasks is not None else set()

    @property
    def remote(self) -> RemoteProxy:
        """Proxy for calling functions on the relay."""
        return RemoteProxy(self)

    @property
    def pending_count(self) -> int:
        """Number of outbound calls still waiting for a result."""
        return len(self._pending)

    # Outbound

    def invoke(
        self, name: str, args: list[Any] | None = None, timeout: float | None = None
    ) -> asyncio.Future[Any]:
        """Call a function on the relay.

        Must be called with a running event loop.

        Args:
            name: Remote function name
            args: Positional arguments
            timeout: Seconds before the future fails with TimeoutError
                (defaults to the configured rmi_timeout; None waits forever)

        Returns:
            Future resolved with the result, or failed with RemoteCallError
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[Any] = loop.create_future()

        call_id = generate_call_id()
        while call_id in self._pending:
            call_id = generate_call_id()

        self._pending[call_id] = PendingCall(id=call_id, name=name, future=future)
        future.add_done_callback(lambda _: self._pending.pop(call_id, None))

        sent = self._send_command(RmiCommand(id=call_id, name=name, args=list(args or [])))
        if not sent:
            del self._pending[call_id]
            future.set_exception(NotConnectedError(f"Could not send remote call '{name}'"))
            return future

        timeout = self._default_timeout if timeout is None else timeout
        if timeout is not None:
            handle = loop.call_later(timeout, self._expire, call_id, timeout)
            future.add_done_callback(lambda _: handle.cancel())

        return future

    def _expire(self, call_id: str, timeout: float) -> None:
        pending = self._pending.pop(call_id, None)
        if pending is not None and not pending.future.done():
            logger.warning(f"Remote call '{pending.name}' timed out after {timeout}s")
            pending.future.set_exception(
                TimeoutError(f"Remote call '{pending.name}' timed out after {timeout}s")
            )

    def handle_result(self, command: RmiResultCommand) -> None:
        """Settle the pending call matching an inbound rmi-result."""
        pending = self._pending.pop(command.id, None)
        if pending is None:
            logger.debug(f"Ignoring rmi-result for unknown call id {command.id}")
            return
        if pending.future.done():
            return
        if command.error:
            pending.future.set_exception(RemoteCallError(command.error, pending.name))
        else:
            pending.future.set_result(command.result)

    # Inbound

    def handle_call(self, command: RmiCommand) -> None:
        """Run a registered function for the relay and reply exactly once."""
        func = self.functions.get(command.name)
        if func is None:
            logger.debug(f"Remote call to unknown function '{command.name}'")
            self._reply(command.id, None, ERROR_UNDEFINED)
            return

        token = current_client.set(self._client)
        try:
            try:
                result = func(*command.args)
            except Exception:
                logger.exception(f"Function '{command.name}' raised")
                self._reply(command.id, None, ERROR_FUNCTION)
                return

            if inspect.isawaitable(result):
                # Task copies the context, so current_client stays set inside
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(
                    lambda t: self._reply_when_done(t, command.id, command.name)
                )
                return
        finally:
            current_client.reset(token)

        self._reply(command.id, result, None)

    def reject_call(self, call_id: str) -> None:
        """Answer a call that could not be run with ``function error``."""
        self._reply(call_id, None, ERROR_FUNCTION)

    def _reply_when_done(self, task: asyncio.Future[Any], call_id: str, name: str) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning(f"Function '{name}' was cancelled")
            self._reply(call_id, None, ERROR_FUNCTION)
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Function '{name}' failed: {exc!r}")
            self._reply(call_id, None, ERROR_FUNCTION)
            return
        self._reply(call_id, task.result(), None)

    def _reply(self, call_id: str, result: Any, error: str | None) -> None:
        sent = self._send_command(RmiResultCommand(id=call_id, result=result, error=error))
        if not sent and error is None:
            # Result may not be JSON serializable; report the call as failed
            self._send_command(RmiResultCommand(id=call_id, result=None, error=ERROR_FUNCTION))
