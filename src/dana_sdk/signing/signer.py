"""
RSA request signer for the partner API

The signer loads the private key once and produces SignedMessage values, so a
signature always travels with the canonical string and timestamp it covers.
"""

import logging
import time
from datetime import tzinfo
from typing import Optional, Union

from ..crypto.keys import KeyMaterial, load_private_key, private_key_material
from ..crypto.rsa import sign_content
from .canonical_message import build_signed_call_string, build_token_string
from .types import HttpMethod, RequestBody, SignedMessage
from .utils import generate_timestamp

logger = logging.getLogger(__name__)

# Signing slower than this is logged as a warning
SLOW_SIGNING_THRESHOLD_MS = 50.0


class Signer:
    """
    Signs canonical strings with an RSA private key (PKCS#1 v1.5, SHA-256).

    Stateless after construction; a single instance may be shared across
    threads.
    """

    def __init__(self, private_key: KeyMaterial, *, tz: Optional[tzinfo] = None,
                 log_canonical_strings: bool = False):
        """
        Initialize the signer.

        Args:
            private_key: PRIVATE key material
            tz: Timezone for generated timestamps (local when None)
            log_canonical_strings: Log each canonical string at debug level

        Raises:
            KeyFormatError: If the key material is not valid base64
            SigningError: If the key cannot be parsed
        """
        self._private_key = load_private_key(private_key)
        self.tz = tz
        self.log_canonical_strings = log_canonical_strings

    def sign(self, canonical_string: Union[str, bytes]) -> str:
        """
        Sign a canonical string.

        Returns:
            str: Base64 signature

        Raises:
            SigningError: If signing fails
        """
        start = time.perf_counter()
        signature = sign_content(canonical_string, self._private_key)
        elapsed_ms = (time.perf_counter() - start) * 1000

        if elapsed_ms > SLOW_SIGNING_THRESHOLD_MS:
            logger.warning(f"Signing operation took {elapsed_ms:.2f}ms (target: <{SLOW_SIGNING_THRESHOLD_MS:.0f}ms)")

        return signature

    def _signed(self, canonical_string: bytes, timestamp: str) -> SignedMessage:
        if self.log_canonical_strings:
            logger.debug(f"String to sign: {canonical_string.decode('utf-8', errors='replace')}")
        return SignedMessage(
            canonical_string=canonical_string,
            timestamp=timestamp,
            signature=self.sign(canonical_string)
        )

    def sign_token_request(self, client_id: str, timestamp: Optional[str] = None) -> SignedMessage:
        """
        Sign an access-token request ("{client_id}|{timestamp}").

        Args:
            client_id: Partner-issued client id
            timestamp: Timestamp to embed (generated when None)
        """
        timestamp = timestamp or generate_timestamp(self.tz)
        return self._signed(build_token_string(client_id, timestamp), timestamp)

    def sign_call(
        self,
        method: Union[HttpMethod, str],
        relative_path: str,
        body: RequestBody = None,
        timestamp: Optional[str] = None
    ) -> SignedMessage:
        """
        Sign a service call ("{METHOD}:{path}:{body hash}:{timestamp}").

        Args:
            method: HTTP method
            relative_path: Path relative to the partner base URL
            body: Request body exactly as it will be sent
            timestamp: Timestamp to embed (generated when None)
        """
        timestamp = timestamp or generate_timestamp(self.tz)
        canonical = build_signed_call_string(method, relative_path, body, timestamp)
        return self._signed(canonical, timestamp)


def create_signer(private_key: Union[KeyMaterial, str], **kwargs) -> Signer:
    """
    Create a signer from key material or a bare base64 private key.

    Returns:
        Signer: Configured signer instance
    """
    if isinstance(private_key, str):
        private_key = private_key_material(private_key)
    return Signer(private_key, **kwargs)
