"""
Canonical string construction for partner request signatures

Two layouts exist and are selected per endpoint with CanonicalScheme:

    TOKEN        {client_id}|{timestamp}
    SIGNED_CALL  {METHOD}:{relative_path}:{lowercase sha256 hex of body}:{timestamp}

The timestamp passed in here must be the one sent in X-TIMESTAMP.
"""

from typing import Optional, Union

from ..exceptions import SigningError
from .types import CanonicalScheme, HttpMethod, RequestBody
from .utils import serialize_body, sha256_hex, validate_timestamp


def _check_timestamp(timestamp: str) -> None:
    if not validate_timestamp(timestamp):
        raise SigningError(
            f"Invalid timestamp: {timestamp}",
            "INVALID_TIMESTAMP",
            {"timestamp": timestamp}
        )


def build_token_string(client_id: str, timestamp: str) -> bytes:
    """
    Build the canonical string for access-token acquisition.

    Args:
        client_id: Partner-issued client id
        timestamp: Timestamp that will be sent in X-TIMESTAMP

    Returns:
        bytes: "{client_id}|{timestamp}" as UTF-8
    """
    if not client_id:
        raise SigningError("Client ID cannot be empty", "INVALID_CLIENT_ID")
    _check_timestamp(timestamp)

    return f"{client_id}|{timestamp}".encode("utf-8")


def build_signed_call_string(
    method: Union[HttpMethod, str],
    relative_path: str,
    body: RequestBody,
    timestamp: str
) -> bytes:
    """
    Build the canonical string for a signed service call.

    Args:
        method: HTTP method (upper-cased)
        relative_path: Path relative to the partner base URL, e.g. "/v1.0/balance-inquiry.htm"
        body: Request body; str/bytes are minified, dict/list serialized compactly
        timestamp: Timestamp that will be sent in X-TIMESTAMP

    Returns:
        bytes: "{METHOD}:{path}:{body hash}:{timestamp}" as UTF-8
    """
    method_value = method.value if isinstance(method, HttpMethod) else str(method).upper()
    try:
        method_value = HttpMethod(method_value).value
    except ValueError:
        raise SigningError(f"Unsupported HTTP method: {method}", "INVALID_METHOD")

    if not relative_path or not relative_path.startswith("/"):
        raise SigningError(
            f"Relative path must start with '/': {relative_path!r}",
            "INVALID_PATH",
            {"path": relative_path}
        )
    _check_timestamp(timestamp)

    body_hash = sha256_hex(serialize_body(body))
    return f"{method_value}:{relative_path}:{body_hash}:{timestamp}".encode("utf-8")


def build_canonical_string(
    scheme: CanonicalScheme,
    timestamp: str,
    *,
    client_id: Optional[str] = None,
    method: Union[HttpMethod, str, None] = None,
    relative_path: Optional[str] = None,
    body: RequestBody = None
) -> bytes:
    """
    Build a canonical string for the given scheme.

    Args:
        scheme: Canonical layout to use
        timestamp: Timestamp shared with the X-TIMESTAMP header
        client_id: Required for CanonicalScheme.TOKEN
        method: Required for CanonicalScheme.SIGNED_CALL
        relative_path: Required for CanonicalScheme.SIGNED_CALL
        body: Request body for CanonicalScheme.SIGNED_CALL

    Returns:
        bytes: Canonical string

    Raises:
        SigningError: If required inputs for the scheme are missing or invalid
    """
    if scheme == CanonicalScheme.TOKEN:
        return build_token_string(client_id or "", timestamp)

    if scheme == CanonicalScheme.SIGNED_CALL:
        if method is None or relative_path is None:
            raise SigningError(
                "Signed-call scheme requires method and relative_path",
                "CANONICAL_STRING_FAILED",
                {"method": method, "relative_path": relative_path}
            )
        return build_signed_call_string(method, relative_path, body, timestamp)

    raise SigningError(f"Unknown canonical scheme: {scheme}", "CANONICAL_STRING_FAILED")
