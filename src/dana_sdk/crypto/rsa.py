"""
RSA-SHA256 signing primitives for DANA Python SDK

Signatures are RSASSA-PKCS1-v1_5 over SHA-256, which is deterministic: the
same key and message always produce the same signature bytes.
"""

import base64
import binascii
import logging
from typing import Union

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

from ..exceptions import DanaSDKError, SigningError
from .keys import KeyMaterial, load_private_key, load_public_key

logger = logging.getLogger(__name__)

# Errors that resolve to an invalid signature instead of propagating
_VERIFICATION_ERRORS = (
    InvalidSignature,
    UnsupportedAlgorithm,
    binascii.Error,
    ValueError,
    TypeError,
    DanaSDKError,
)


def _to_bytes(message: Union[str, bytes]) -> bytes:
    if isinstance(message, str):
        return message.encode("utf-8")
    return message


def sign_content(message: Union[str, bytes], private_key: Union[RSAPrivateKey, KeyMaterial]) -> str:
    """
    Sign a message with an RSA private key.

    Args:
        message: Canonical string to sign (str is encoded as UTF-8)
        private_key: Loaded RSA key or PRIVATE key material

    Returns:
        str: Base64-encoded signature

    Raises:
        KeyFormatError: If key material is not valid base64
        SigningError: If the key cannot be parsed or signing fails
    """
    if isinstance(private_key, KeyMaterial):
        private_key = load_private_key(private_key)

    if not isinstance(message, (str, bytes)):
        raise SigningError(
            f"Message must be str or bytes, got {type(message).__name__}",
            "INVALID_MESSAGE"
        )

    try:
        signature = private_key.sign(_to_bytes(message), padding.PKCS1v15(), hashes.SHA256())
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise SigningError(f"Message signing failed: {e}", "SIGNING_FAILED") from e

    return base64.b64encode(signature).decode("ascii")


def verify_content(
    message: Union[str, bytes],
    signature: str,
    public_key: Union[RSAPublicKey, KeyMaterial]
) -> bool:
    """
    Verify a base64 signature over a message.

    Fail-closed: a malformed key, malformed signature or digest mismatch all
    return False. Nothing is raised.

    Args:
        message: Exact bytes that were signed
        signature: Base64-encoded signature
        public_key: Loaded RSA key or PUBLIC key material

    Returns:
        bool: True only if the signature is valid for message
    """
    try:
        if isinstance(public_key, KeyMaterial):
            public_key = load_public_key(public_key)

        signature_bytes = base64.b64decode(signature, validate=True)
        public_key.verify(signature_bytes, _to_bytes(message), padding.PKCS1v15(), hashes.SHA256())
        return True
    except _VERIFICATION_ERRORS as e:
        logger.debug(f"Signature verification failed: {type(e).__name__}")
        return False
