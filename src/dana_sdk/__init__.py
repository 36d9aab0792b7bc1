"""
DANA Python SDK
RSA request signing, webhook verification and access-token sessions for the DANA partner API
"""

from .version import __version__
from .crypto.keys import (
    KeyRole,
    KeyMaterial,
    format_key_block,
    load_private_key,
    load_public_key,
    private_key_material,
    public_key_material,
)
from .crypto.rsa import (
    sign_content,
    verify_content,
)
from .crypto.storage import (
    KeyMaterialStore,
    get_default_store,
)
from .exceptions import (
    DanaSDKError,
    ValidationError,
    KeyFormatError,
    SigningError,
    StorageError,
    AuthenticationError,
    MalformedResponseError,
    TransportError,
    TransportTimeoutError,
    PartnerAPIError,
)
from .signing import (
    HttpMethod,
    CanonicalScheme,
    HeaderFamily,
    SignedMessage,
    build_canonical_string,
    build_token_string,
    build_signed_call_string,
    Signer,
    create_signer,
    compose_headers,
    generate_timestamp,
    minify_json,
)
from .session import (
    SessionState,
    TokenGrant,
    AccessToken,
    SessionManager,
)
from .verification import (
    WebhookVerifier,
    create_webhook_verifier,
    verify_webhook_signature,
)
from .config import (
    PartnerConfig,
    load_partner_config,
)
from .http_client import (
    DanaHttpClient,
    PartnerResponse,
    RequestsTransport,
    Transport,
    TransportResponse,
    create_client,
)

__all__ = [
    '__version__',
    # Keys
    'KeyRole',
    'KeyMaterial',
    'format_key_block',
    'load_private_key',
    'load_public_key',
    'private_key_material',
    'public_key_material',
    'sign_content',
    'verify_content',
    'KeyMaterialStore',
    'get_default_store',
    # Exceptions
    'DanaSDKError',
    'ValidationError',
    'KeyFormatError',
    'SigningError',
    'StorageError',
    'AuthenticationError',
    'MalformedResponseError',
    'TransportError',
    'TransportTimeoutError',
    'PartnerAPIError',
    # Signing
    'HttpMethod',
    'CanonicalScheme',
    'HeaderFamily',
    'SignedMessage',
    'build_canonical_string',
    'build_token_string',
    'build_signed_call_string',
    'Signer',
    'create_signer',
    'compose_headers',
    'generate_timestamp',
    'minify_json',
    # Session
    'SessionState',
    'TokenGrant',
    'AccessToken',
    'SessionManager',
    # Verification
    'WebhookVerifier',
    'create_webhook_verifier',
    'verify_webhook_signature',
    # Configuration
    'PartnerConfig',
    'load_partner_config',
    # HTTP client
    'DanaHttpClient',
    'PartnerResponse',
    'RequestsTransport',
    'Transport',
    'TransportResponse',
    'create_client',
]
