"""
Type definitions for request signing functionality

This module provides the enums and data classes shared by the canonical
string builder, the signer and the header composer.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Union


class HttpMethod(str, Enum):
    """HTTP methods supported for signing"""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"


class CanonicalScheme(str, Enum):
    """
    Canonical string layouts used by the partner

    TOKEN: "{client_id}|{timestamp}" for access-token acquisition
    SIGNED_CALL: "{METHOD}:{path}:{sha256 hex of minified body}:{timestamp}"
    """
    TOKEN = "token"
    SIGNED_CALL = "signed_call"


class HeaderFamily(str, Enum):
    """Header sets required by the partner's endpoint families"""
    CLIENT = "client"
    PARTNER = "partner"


# Header names sent on every signed call
HEADER_CONTENT_TYPE = "Content-Type"
HEADER_CLIENT_KEY = "X-CLIENT-KEY"
HEADER_PARTNER_ID = "X-PARTNER-ID"
HEADER_TIMESTAMP = "X-TIMESTAMP"
HEADER_SIGNATURE = "X-SIGNATURE"
HEADER_EXTERNAL_ID = "X-EXTERNAL-ID"
HEADER_CHANNEL_ID = "CHANNEL-ID"
HEADER_AUTHORIZATION = "Authorization"

JSON_CONTENT_TYPE = "application/json"


@dataclass(frozen=True)
class SignedMessage:
    """
    A canonical string together with the timestamp and signature made from it

    Attributes:
        canonical_string: Exact bytes that were signed
        timestamp: Timestamp embedded in canonical_string, reused in X-TIMESTAMP
        signature: Base64 signature over canonical_string
    """
    canonical_string: bytes
    timestamp: str
    signature: str

    def __post_init__(self):
        if not self.canonical_string:
            raise ValueError("Canonical string cannot be empty")

        if not self.signature:
            raise ValueError("Signature cannot be empty")


# Type aliases for convenience
HeaderDict = Dict[str, str]
RequestBody = Union[str, bytes, Dict[str, Any], List[Any], None]
