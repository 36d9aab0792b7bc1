"""
Partner connection configuration for the Python SDK

Provides the PartnerConfig dataclass and loaders for dicts, JSON documents,
JSON files and DANA_* environment variables.
"""

import json
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union
from urllib.parse import urlparse

from ..crypto.keys import KeyMaterial, KeyRole
from ..crypto.storage import KeyMaterialStore
from ..exceptions import ValidationError

ENV_PREFIX = "DANA_"
DEFAULT_CHANNEL_ID = "95221"
DEFAULT_TOKEN_PATH = "/v1.0/access-token/b2b.htm"
DEFAULT_TIMEOUT = 30.0
DEFAULT_USER_AGENT = "DANA-Python-SDK/0.1.0"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}

# Storage names used by from_env when key variables are unset
PRIVATE_KEY_STORAGE_NAME = "private_key"
PUBLIC_KEY_STORAGE_NAME = "public_key"


@dataclass
class PartnerConfig:
    """
    Configuration for the partner API connection.

    Attributes:
        base_url: Partner API origin, e.g. "https://api.sandbox.dana.id"
        client_id: Partner-issued client id (X-CLIENT-KEY / X-PARTNER-ID)
        private_key: Base64 PKCS#8 RSA private key used for signing
        public_key: Partner's base64 RSA public key for webhook verification
        channel_id: CHANNEL-ID header value
        merchant_id: Merchant id for business payloads (not used by signing)
        timeout: Per-call timeout in seconds
        verify_ssl: Verify TLS certificates
        token_path: Relative path of the B2B access-token endpoint
        user_agent: User-Agent header value
        debug_logging: Log canonical strings at debug level
    """
    base_url: str
    client_id: str
    private_key: str
    public_key: Optional[str] = None
    channel_id: str = DEFAULT_CHANNEL_ID
    merchant_id: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    verify_ssl: bool = True
    token_path: str = DEFAULT_TOKEN_PATH
    user_agent: str = DEFAULT_USER_AGENT
    debug_logging: bool = False

    def __post_init__(self):
        """Validate partner configuration."""
        if not self.base_url:
            raise ValidationError("Partner base_url cannot be empty")

        self.base_url = self.base_url.rstrip('/')
        parsed = urlparse(self.base_url)
        if parsed.scheme not in ('http', 'https') or not parsed.netloc:
            raise ValidationError(f"Invalid partner URL format: {self.base_url}")

        if not self.client_id:
            raise ValidationError("client_id cannot be empty")

        if not self.private_key:
            raise ValidationError("private_key cannot be empty")

        if not self.channel_id:
            raise ValidationError("channel_id cannot be empty")

        if self.timeout <= 0:
            raise ValidationError("Timeout must be positive")

        if not self.token_path.startswith('/'):
            raise ValidationError(f"token_path must start with '/': {self.token_path}")

    @property
    def private_key_material(self) -> KeyMaterial:
        return KeyMaterial(value=self.private_key, role=KeyRole.PRIVATE)

    @property
    def public_key_material(self) -> Optional[KeyMaterial]:
        if not self.public_key:
            return None
        return KeyMaterial(value=self.public_key, role=KeyRole.PUBLIC)

    def url_for(self, relative_path: str) -> str:
        """Absolute URL for a path relative to base_url."""
        return f"{self.base_url}{relative_path}"

    def __repr__(self) -> str:
        return (f"PartnerConfig(base_url={self.base_url!r}, client_id={self.client_id!r}, "
                f"channel_id={self.channel_id!r}, timeout={self.timeout}, "
                f"has_public_key={bool(self.public_key)})")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'PartnerConfig':
        """
        Build a configuration from a mapping of field names to values.

        Unknown keys are rejected so typos do not go unnoticed.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValidationError(
                f"Unknown configuration keys: {', '.join(unknown)}",
                details={"unknown_keys": unknown}
            )

        try:
            return cls(**dict(data))
        except TypeError as e:
            raise ValidationError(f"Invalid configuration: {e}")

    @classmethod
    def from_json(cls, json_string: str) -> 'PartnerConfig':
        """Load configuration from a JSON document."""
        try:
            data = json.loads(json_string)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Failed to parse configuration JSON: {e}", "PARSE_ERROR")

        if not isinstance(data, dict):
            raise ValidationError("Configuration JSON must be an object", "INVALID_FORMAT")
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, file_path: Union[str, Path]) -> 'PartnerConfig':
        """Load configuration from a JSON file."""
        try:
            with open(Path(file_path), 'r', encoding='utf-8') as f:
                json_string = f.read()
        except OSError as e:
            raise ValidationError(f"Failed to read configuration file: {e}", "FILE_ERROR")
        return cls.from_json(json_string)

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        prefix: str = ENV_PREFIX,
        key_store: Optional[KeyMaterialStore] = None
    ) -> 'PartnerConfig':
        """
        Load configuration from environment variables.

        Reads {prefix}BASE_URL, CLIENT_ID, PRIVATE_KEY, PUBLIC_KEY, CHANNEL_ID,
        MERCHANT_ID, TIMEOUT, VERIFY_SSL, TOKEN_PATH and DEBUG. When a key
        variable is unset and key_store is given, the key is read from the
        store under "private_key" / "public_key".
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> Optional[str]:
            value = env.get(f"{prefix}{name}")
            return value if value else None

        data: Dict[str, Any] = {
            'base_url': get('BASE_URL') or '',
            'client_id': get('CLIENT_ID') or '',
            'private_key': get('PRIVATE_KEY'),
            'public_key': get('PUBLIC_KEY'),
            'merchant_id': get('MERCHANT_ID'),
        }

        if key_store is not None:
            if not data['private_key']:
                material = key_store.load(PRIVATE_KEY_STORAGE_NAME, KeyRole.PRIVATE)
                data['private_key'] = material.value if material else None
            if not data['public_key']:
                material = key_store.load(PUBLIC_KEY_STORAGE_NAME, KeyRole.PUBLIC)
                data['public_key'] = material.value if material else None

        data['private_key'] = data['private_key'] or ''

        if get('CHANNEL_ID'):
            data['channel_id'] = get('CHANNEL_ID')
        if get('TOKEN_PATH'):
            data['token_path'] = get('TOKEN_PATH')
        if get('TIMEOUT'):
            try:
                data['timeout'] = float(get('TIMEOUT'))
            except ValueError:
                raise ValidationError(f"{prefix}TIMEOUT must be a number: {get('TIMEOUT')}")
        if get('VERIFY_SSL'):
            data['verify_ssl'] = _parse_bool(f"{prefix}VERIFY_SSL", get('VERIFY_SSL'))
        if get('DEBUG'):
            data['debug_logging'] = _parse_bool(f"{prefix}DEBUG", get('DEBUG'))

        return cls(**data)


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValidationError(f"{name} must be a boolean: {value}")


def load_partner_config(
    file_path: Optional[Union[str, Path]] = None,
    key_store: Optional[KeyMaterialStore] = None
) -> PartnerConfig:
    """
    Load configuration from a JSON file when given, otherwise from the environment.
    """
    if file_path is not None:
        return PartnerConfig.from_file(file_path)
    return PartnerConfig.from_env(key_store=key_store)
