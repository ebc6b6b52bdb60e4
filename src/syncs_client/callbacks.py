"""Invoking user callbacks without letting them break the session."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


def invoke_callback(
    callback: Callable[..., Any],
    *args: Any,
    description: str,
    tasks: set[asyncio.Task[Any]],
) -> None:
    """Call a user callback, containing any failure.

    Coroutine callbacks are scheduled on the running loop and held in
    ``tasks`` until they finish; their failures are logged then.
    """
    try:
        result = callback(*args)
    except Exception:
        logger.exception(f"Error in {description}")
        return

    if inspect.isawaitable(result):
        task = asyncio.ensure_future(result)
        tasks.add(task)
        task.add_done_callback(lambda t: _finish(t, tasks, description))


def _finish(task: asyncio.Task[Any], tasks: set[asyncio.Task[Any]], description: str) -> None:
    tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"Error in {description}: {exc!r}")
