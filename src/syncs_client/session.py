"""Session record shared by every subsystem of one client."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from .config import SyncsConfig


@dataclass
class Session:
    """Identity and connectivity of one client.

    ``socket_id`` stays None until the relay assigns one during the first
    handshake, and is kept across reconnects so the relay can resume the
    session. ``online`` is only true between a completed handshake and the
    next close.
    """

    config: SyncsConfig = field(default_factory=SyncsConfig)
    socket_id: str | None = None
    online: bool = False
    # Callback tasks still running
    tasks: set[asyncio.Task[Any]] = field(default_factory=set, repr=False)
