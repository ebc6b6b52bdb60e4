"""Client configuration.

Plain dataclass with defaults, plus an environment loader for hosts that
configure the runtime without code changes.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from typing import Any

ENV_PREFIX = "SYNCS_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def default_path() -> str:
    """Relay address on the current host (``SYNCS_HOST`` or localhost)."""
    host = os.getenv(f"{ENV_PREFIX}HOST", "localhost")
    return f"ws://{host}/syncs"


@dataclass
class SyncsConfig:
    """Runtime configuration for a SyncsClient.

    Attributes:
        path: WebSocket address of the relay
        auto_connect: Connect as soon as the client is started
        auto_reconnect: Reconnect after an unrequested close
        reconnect_delay: Seconds to wait before reconnecting
        debug: Log every inbound and outbound command
        rmi_timeout: Seconds before an outbound remote call fails (None = never)
    """

    path: str = field(default_factory=default_path)
    auto_connect: bool = True
    auto_reconnect: bool = True
    reconnect_delay: float = 1.0
    debug: bool = False
    rmi_timeout: float | None = None

    def __post_init__(self) -> None:
        if self.reconnect_delay < 0:
            raise ValueError(f"reconnect_delay must be >= 0, got {self.reconnect_delay}")
        if self.rmi_timeout is not None and self.rmi_timeout <= 0:
            raise ValueError(f"rmi_timeout must be > 0, got {self.rmi_timeout}")

    @classmethod
    def from_env(cls, **overrides: Any) -> SyncsConfig:
        """Build a config from ``SYNCS_*`` environment variables.

        Explicit keyword overrides win over the environment.
        """
        values: dict[str, Any] = {}
        for f in fields(cls):
            raw = os.getenv(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is None:
                continue
            values[f.name] = _coerce(f.name, raw)
        values.update(overrides)
        return cls(**values)


def _coerce(name: str, raw: str) -> Any:
    if name in ("auto_connect", "auto_reconnect", "debug"):
        lowered = raw.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ValueError(f"Invalid boolean for {ENV_PREFIX}{name.upper()}: {raw!r}")
    if name == "reconnect_delay":
        return float(raw)
    if name == "rmi_timeout":
        return float(raw) if raw.strip() else None
    return raw
