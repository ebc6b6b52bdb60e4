"""Wire protocol layer.

Defines the command envelope shared by every subsystem and the frame
codec used on the channel.

Key concepts:
- Commands: tagged objects ({command: true, type: ...}) routed by type
- Raw messages: any other JSON value, delivered to message listeners
- Frames: percent-encoded compact JSON text
"""

from .codec import decode_frame, encode_frame
from .commands import (
    Command,
    CommandType,
    EventCommand,
    GetSocketIdCommand,
    ReportSocketIdCommand,
    RmiCommand,
    RmiResultCommand,
    Scope,
    SetSocketIdCommand,
    SyncCommand,
    is_command,
    parse_command,
)

__all__ = [
    "Command",
    "CommandType",
    "EventCommand",
    "GetSocketIdCommand",
    "ReportSocketIdCommand",
    "RmiCommand",
    "RmiResultCommand",
    "Scope",
    "SetSocketIdCommand",
    "SyncCommand",
    "is_command",
    "parse_command",
    "encode_frame",
    "decode_frame",
]
