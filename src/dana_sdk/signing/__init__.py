"""
DANA Python SDK - Request Signing Module

Canonical string construction, RSA-SHA256 signing and header composition for
the partner's signature-protected API endpoints.
"""

from .types import (
    HttpMethod,
    CanonicalScheme,
    HeaderFamily,
    SignedMessage,
    HEADER_AUTHORIZATION,
    HEADER_CHANNEL_ID,
    HEADER_CLIENT_KEY,
    HEADER_CONTENT_TYPE,
    HEADER_EXTERNAL_ID,
    HEADER_PARTNER_ID,
    HEADER_SIGNATURE,
    HEADER_TIMESTAMP,
)

from .canonical_message import (
    build_canonical_string,
    build_token_string,
    build_signed_call_string,
)

from .signer import (
    Signer,
    create_signer,
)

from .headers import compose_headers

from .utils import (
    format_timestamp,
    generate_timestamp,
    validate_timestamp,
    generate_external_id,
    minify_json,
    serialize_body,
    sha256_hex,
)

# Public API exports
__all__ = [
    # Types
    'HttpMethod',
    'CanonicalScheme',
    'HeaderFamily',
    'SignedMessage',
    'HEADER_AUTHORIZATION',
    'HEADER_CHANNEL_ID',
    'HEADER_CLIENT_KEY',
    'HEADER_CONTENT_TYPE',
    'HEADER_EXTERNAL_ID',
    'HEADER_PARTNER_ID',
    'HEADER_SIGNATURE',
    'HEADER_TIMESTAMP',
    # Canonical strings
    'build_canonical_string',
    'build_token_string',
    'build_signed_call_string',
    # Signing
    'Signer',
    'create_signer',
    'compose_headers',
    # Utilities
    'format_timestamp',
    'generate_timestamp',
    'validate_timestamp',
    'generate_external_id',
    'minify_json',
    'serialize_body',
    'sha256_hex',
]
