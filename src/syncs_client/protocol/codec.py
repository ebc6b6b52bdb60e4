"""Frame codec.

Every frame on the channel is compact JSON escaped the way JavaScript's
``encodeURI`` escapes it, so the relay and browser clients can read our
frames and we can read theirs.
"""

from __future__ import annotations

import json
import re
from typing import Any
from urllib.parse import quote, unquote

from ..errors import FrameDecodeError

# Characters encodeURI leaves untouched besides ASCII letters and digits
ENCODE_URI_SAFE = ";,/?:@&=+$-_.!~*'()#"

# A "%" not followed by two hex digits; decodeURI rejects these
_MALFORMED_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def encode_frame(message: Any) -> str:
    """Serialize a JSON-compatible value into a wire frame.

    Raises:
        TypeError: If the value is not JSON serializable
        ValueError: If the value contains NaN or infinity
    """
    text = json.dumps(message, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    return quote(text, safe=ENCODE_URI_SAFE)


def decode_frame(frame: str) -> Any:
    """Parse a wire frame back into a JSON value.

    Raises:
        FrameDecodeError: If the frame is not valid escaped JSON
    """
    match = _MALFORMED_ESCAPE.search(frame)
    if match:
        raise FrameDecodeError(f"Invalid frame: malformed escape at position {match.start()}")
    try:
        return json.loads(unquote(frame, errors="strict"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise FrameDecodeError(f"Invalid frame: {e}") from e
