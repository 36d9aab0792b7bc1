"""
RSA key material handling for DANA Python SDK

The partner hands out keys as bare base64 strings (PKCS#8 private keys and
SubjectPublicKeyInfo public keys). This module turns them into PEM key blocks
and loads them with the cryptography package.
"""

import base64
import binascii
import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Union

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

from ..exceptions import KeyFormatError, SigningError

PEM_LINE_LENGTH = 64


class KeyRole(str, Enum):
    """Role of a key in the signing scheme"""
    PRIVATE = "PRIVATE"
    PUBLIC = "PUBLIC"


@dataclass(frozen=True)
class KeyMaterial:
    """
    Raw base64 key material together with its role.

    Attributes:
        value: Base64-encoded DER key (no PEM armour)
        role: Whether the key signs (PRIVATE) or verifies (PUBLIC)
    """
    value: str
    role: KeyRole

    def to_pem(self) -> str:
        """Format this material as a PEM key block."""
        return format_key_block(self.value, self.role)

    def __repr__(self) -> str:
        return f"KeyMaterial(role={self.role.value}, length={len(self.value)})"


def split_into_chunks(value: str, chunk_size: int = PEM_LINE_LENGTH) -> List[str]:
    """Split a string into consecutive chunks of at most chunk_size characters."""
    chunk_count = math.ceil(len(value) / chunk_size)
    return [value[i * chunk_size:(i + 1) * chunk_size] for i in range(chunk_count)]


def _validate_base64(value: str) -> str:
    if not isinstance(value, str):
        raise KeyFormatError(
            f"Key material must be a string, got {type(value).__name__}",
            "INVALID_KEY_TYPE"
        )

    stripped = value.strip()
    if not stripped:
        raise KeyFormatError("Key material cannot be empty", "EMPTY_KEY")

    try:
        base64.b64decode(stripped, validate=True)
    except (binascii.Error, ValueError) as e:
        raise KeyFormatError(
            f"Key material is not valid base64: {e}",
            "INVALID_BASE64"
        )

    return stripped


def format_key_block(base64_key: str, role: Union[KeyRole, str]) -> str:
    """
    Convert a bare base64 key into a PEM key block.

    Args:
        base64_key: Base64-encoded DER key
        role: KeyRole.PRIVATE or KeyRole.PUBLIC

    Returns:
        str: Begin marker, 64-character body lines and end marker joined by newlines

    Raises:
        KeyFormatError: If the key is empty or not valid base64
    """
    try:
        key_role = KeyRole(role)
    except ValueError:
        raise KeyFormatError(f"Unknown key role: {role}", "INVALID_KEY_ROLE")

    payload = _validate_base64(base64_key)

    return "\n".join([
        f"-----BEGIN {key_role.value} KEY-----",
        *split_into_chunks(payload, PEM_LINE_LENGTH),
        f"-----END {key_role.value} KEY-----",
    ])


def load_private_key(material: KeyMaterial) -> RSAPrivateKey:
    """
    Load an RSA private key from key material.

    Raises:
        KeyFormatError: If the material is not base64
        SigningError: If the key cannot be parsed or is not an RSA key
    """
    if material.role != KeyRole.PRIVATE:
        raise KeyFormatError("Signing requires PRIVATE key material", "WRONG_KEY_ROLE")

    pem = material.to_pem()
    try:
        key = serialization.load_pem_private_key(pem.encode("ascii"), password=None)
    except (ValueError, TypeError) as e:
        raise SigningError(f"Failed to parse private key: {e}", "INVALID_PRIVATE_KEY")

    if not isinstance(key, RSAPrivateKey):
        raise SigningError(
            f"Private key must be RSA, got {type(key).__name__}",
            "UNSUPPORTED_KEY_TYPE"
        )
    return key


def load_public_key(material: KeyMaterial) -> RSAPublicKey:
    """
    Load an RSA public key from key material.

    Raises:
        KeyFormatError: If the material is not base64
        SigningError: If the key cannot be parsed or is not an RSA key
    """
    if material.role != KeyRole.PUBLIC:
        raise KeyFormatError("Verification requires PUBLIC key material", "WRONG_KEY_ROLE")

    pem = material.to_pem()
    try:
        key = serialization.load_pem_public_key(pem.encode("ascii"))
    except (ValueError, TypeError) as e:
        raise SigningError(f"Failed to parse public key: {e}", "INVALID_PUBLIC_KEY")

    if not isinstance(key, RSAPublicKey):
        raise SigningError(
            f"Public key must be RSA, got {type(key).__name__}",
            "UNSUPPORTED_KEY_TYPE"
        )
    return key


def private_key_material(value: str) -> KeyMaterial:
    """Shorthand for PRIVATE key material."""
    return KeyMaterial(value=value, role=KeyRole.PRIVATE)


def public_key_material(value: str) -> KeyMaterial:
    """Shorthand for PUBLIC key material."""
    return KeyMaterial(value=value, role=KeyRole.PUBLIC)
