"""
Webhook signature verification for partner notifications

The partner signs the notification body it sends. Verification must run on
the body bytes exactly as received: parsing and re-serializing the JSON can
reorder keys or reformat numbers and would verify different bytes than the
partner signed.
"""

import logging
from typing import Optional, Union

from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey

from ..crypto.keys import KeyMaterial, KeyRole, load_public_key
from ..crypto.rsa import verify_content
from ..exceptions import DanaSDKError

logger = logging.getLogger(__name__)


class WebhookVerifier:
    """
    Fail-closed verifier for inbound partner webhooks.

    verify() never raises. A verifier built from unusable key material is
    still constructed and rejects every payload.
    """

    def __init__(self, public_key: KeyMaterial):
        """
        Initialize the verifier.

        Args:
            public_key: Partner's PUBLIC key material
        """
        self._public_key: Optional[RSAPublicKey] = None
        try:
            self._public_key = load_public_key(public_key)
        except DanaSDKError as e:
            logger.error(f"Webhook public key is unusable, all webhooks will be rejected: {e}")

    @property
    def is_configured(self) -> bool:
        """True if a usable public key was loaded."""
        return self._public_key is not None

    def verify(self, raw_body: Union[bytes, bytearray, memoryview], signature: Optional[str]) -> bool:
        """
        Verify a webhook signature over the raw request body.

        Args:
            raw_body: Request body bytes exactly as received
            signature: Value of the X-SIGNATURE header

        Returns:
            bool: True only if the signature is valid for raw_body
        """
        if self._public_key is None:
            logger.warning("Webhook rejected: no usable public key")
            return False

        if not signature:
            logger.warning("Webhook rejected: missing signature header")
            return False

        if not isinstance(raw_body, (bytes, bytearray, memoryview)):
            logger.warning(
                f"Webhook rejected: body must be raw bytes, got {type(raw_body).__name__}"
            )
            return False

        valid = verify_content(bytes(raw_body), signature.strip(), self._public_key)
        if not valid:
            logger.warning(f"Webhook rejected: invalid signature for {len(raw_body)}-byte body")
        return valid

    __call__ = verify


def create_webhook_verifier(public_key: Union[KeyMaterial, str]) -> WebhookVerifier:
    """
    Create a webhook verifier from key material or a bare base64 public key.

    Returns:
        WebhookVerifier: Configured verifier
    """
    if isinstance(public_key, str):
        public_key = KeyMaterial(value=public_key, role=KeyRole.PUBLIC)
    return WebhookVerifier(public_key)


def verify_webhook_signature(
    raw_body: Union[bytes, bytearray, memoryview],
    signature: Optional[str],
    public_key: Union[KeyMaterial, str]
) -> bool:
    """One-shot webhook verification; see WebhookVerifier.verify."""
    return create_webhook_verifier(public_key).verify(raw_body, signature)
