"""
Utility functions for request signing

This module provides timestamp generation, request id generation, body
minification and digest helpers for the partner's canonical strings.
"""

import hashlib
import json
import re
import uuid
from datetime import datetime, tzinfo
from typing import Optional, Union

from ..exceptions import SigningError
from .types import RequestBody

# Bytes dropped by minification when they occur outside a string literal
_JSON_WHITESPACE = frozenset(b" \t\r\n")
_QUOTE = ord('"')
_BACKSLASH = ord('\\')

_TIMESTAMP_PATTERN = re.compile(
    r'^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}[+-]\d{2}:\d{2}$'
)


def format_timestamp(moment: datetime) -> str:
    """
    Format an aware datetime as YYYY-MM-DDTHH:mm:ss+HH:mm.

    Raises:
        SigningError: If moment carries no UTC offset
    """
    if moment.tzinfo is None or moment.utcoffset() is None:
        raise SigningError(
            "Timestamp must carry an explicit UTC offset",
            "INVALID_TIMESTAMP",
            {"timestamp": moment.isoformat()}
        )
    return moment.isoformat(timespec="seconds")


def generate_timestamp(tz: Optional[tzinfo] = None) -> str:
    """
    Generate the current timestamp in the partner's format.

    Args:
        tz: Timezone to render in (local timezone when None)

    Returns:
        str: e.g. "2024-01-01T10:00:00+07:00"
    """
    if tz is None:
        now = datetime.now().astimezone()
    else:
        now = datetime.now(tz)
    return format_timestamp(now)


def validate_timestamp(timestamp: str) -> bool:
    """
    Check a timestamp string has the YYYY-MM-DDTHH:mm:ss+HH:mm shape.

    Args:
        timestamp: Timestamp string to validate

    Returns:
        bool: True if the timestamp is well formed
    """
    if not isinstance(timestamp, str):
        return False

    if not _TIMESTAMP_PATTERN.match(timestamp):
        return False

    try:
        datetime.fromisoformat(timestamp)
    except ValueError:
        return False
    return True


def generate_external_id() -> str:
    """Generate a unique per-call request id (UUID v4)."""
    return str(uuid.uuid4())


def minify_json(body: Union[str, bytes]) -> bytes:
    """
    Strip insignificant whitespace from a JSON document at the byte level.

    Whitespace inside string literals is kept, and so are key order and
    numeric literals. Input that is not JSON is returned unchanged.

    Args:
        body: JSON text as str (encoded as UTF-8) or bytes

    Returns:
        bytes: Minified document
    """
    data = body.encode("utf-8") if isinstance(body, str) else bytes(body)

    try:
        json.loads(data)
    except ValueError:
        return data

    out = bytearray()
    in_string = False
    escaped = False
    for byte in data:
        if in_string:
            out.append(byte)
            if escaped:
                escaped = False
            elif byte == _BACKSLASH:
                escaped = True
            elif byte == _QUOTE:
                in_string = False
        elif byte in _JSON_WHITESPACE:
            continue
        else:
            out.append(byte)
            if byte == _QUOTE:
                in_string = True

    return bytes(out)


def serialize_body(body: RequestBody) -> bytes:
    """
    Produce the exact body bytes that are both hashed and sent.

    dict and list bodies are serialized once with compact separators and
    insertion order; str and bytes bodies are minified as authored.

    Raises:
        SigningError: If the body type is unsupported or not serializable
    """
    if body is None:
        return b""

    if isinstance(body, (dict, list)):
        try:
            return json.dumps(body, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise SigningError(
                f"Request body is not JSON serializable: {e}",
                "INVALID_BODY"
            )

    if isinstance(body, (str, bytes, bytearray)):
        return minify_json(body)

    raise SigningError(
        f"Body must be str, bytes, dict, list or None, got {type(body).__name__}",
        "INVALID_BODY",
        {"body_type": type(body).__name__}
    )


def sha256_hex(data: bytes) -> str:
    """Lowercase hex SHA-256 digest of data."""
    return hashlib.sha256(data).hexdigest().lower()


def mask_secret(value: Optional[str], visible: int = 6) -> str:
    """Shorten a secret for log output."""
    if not value:
        return "<empty>"
    if len(value) <= visible:
        return "***"
    return f"{value[:visible]}..."
