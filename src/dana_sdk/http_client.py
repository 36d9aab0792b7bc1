"""
HTTP client integration for the partner API

This module provides the authenticated dispatcher used for every outbound
partner call. For each call it resolves the bearer token when needed, builds
and signs the canonical string with the timestamp that goes into the
headers, composes the header set, sends the request with a bounded timeout
and classifies the response.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import tzinfo
from typing import Any, Callable, Dict, Optional, Protocol, Union

import requests
from requests.adapters import HTTPAdapter

from .config.partner_config import PartnerConfig
from .exceptions import (
    AuthenticationError,
    MalformedResponseError,
    PartnerAPIError,
    TransportError,
    TransportTimeoutError,
    ValidationError,
)
from .session import AccessToken, SessionManager, TokenGrant
from .signing.headers import compose_headers
from .signing.signer import Signer
from .signing.types import HEADER_EXTERNAL_ID, HeaderFamily, HttpMethod, RequestBody
from .signing.utils import serialize_body
from .verification.verifier import WebhookVerifier

logger = logging.getLogger(__name__)

TOKEN_REQUEST_BODY = {"grantType": "client_credentials", "additionalInfo": {}}


def is_success_code(response_code: Optional[str]) -> bool:
    """Partner response codes start with the HTTP status; 2xx means success."""
    return response_code is None or str(response_code).startswith("2")


@dataclass
class TransportResponse:
    """Raw response returned by a transport."""
    status_code: int
    body: bytes
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class Transport(Protocol):
    """Sends one HTTP request and returns the raw response."""

    def send(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        body: Optional[bytes],
        timeout: float
    ) -> TransportResponse:
        ...

    def close(self) -> None:
        ...


class RequestsTransport:
    """
    Transport on a requests.Session.

    Retries are disabled: the SDK never repeats a signed call on its own.
    """

    def __init__(self, verify_ssl: bool = True, user_agent: Optional[str] = None):
        self.verify_ssl = verify_ssl
        self.user_agent = user_agent
        self.session = self._create_session()

    def _create_session(self) -> requests.Session:
        """Create HTTP session without automatic retries."""
        session = requests.Session()

        adapter = HTTPAdapter(max_retries=0)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        session.headers.update({'Accept': 'application/json'})
        if self.user_agent:
            session.headers['User-Agent'] = self.user_agent

        return session

    def send(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        body: Optional[bytes],
        timeout: float
    ) -> TransportResponse:
        """
        Send a request.

        Raises:
            TransportTimeoutError: If the call exceeds timeout
            TransportError: On connection or other network errors
        """
        try:
            response = self.session.request(
                method,
                url,
                headers=headers,
                data=body or None,
                timeout=timeout,
                verify=self.verify_ssl
            )
        except requests.exceptions.Timeout:
            raise TransportTimeoutError(f"Request timeout after {timeout} seconds", timeout=timeout)
        except requests.exceptions.ConnectionError as e:
            raise TransportError(f"Connection error: {e}", "CONNECTION_ERROR")
        except requests.exceptions.RequestException as e:
            raise TransportError(f"Request failed: {e}")

        return TransportResponse(
            status_code=response.status_code,
            body=response.content,
            headers=dict(response.headers)
        )

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()
        logger.debug("HTTP session closed")


@dataclass
class PartnerResponse:
    """Successful partner response."""
    http_status: int
    data: Dict[str, Any]
    external_id: str
    response_code: Optional[str] = None
    response_message: Optional[str] = None


class DanaHttpClient:
    """
    Authenticated dispatcher for the partner API.

    One instance owns one SessionManager; share the instance across threads
    so concurrent calls reuse the same cached token.
    """

    def __init__(
        self,
        config: PartnerConfig,
        transport: Optional[Transport] = None,
        session: Optional[SessionManager] = None,
        *,
        clock: Callable[[], float] = time.time,
        tz: Optional[tzinfo] = None
    ):
        """
        Initialize the client.

        Args:
            config: Partner configuration
            transport: Transport to use (RequestsTransport when None)
            session: Session manager to use (one bound to acquire_token when None)
            clock: Clock for the default session manager
            tz: Timezone for X-TIMESTAMP values (local when None)

        Raises:
            KeyFormatError: If the private key is not valid base64
            SigningError: If the private key cannot be parsed
        """
        self.config = config
        self.signer = Signer(
            config.private_key_material,
            tz=tz,
            log_canonical_strings=config.debug_logging
        )
        self.transport = transport or RequestsTransport(config.verify_ssl, config.user_agent)
        self.session = session or SessionManager(self.acquire_token, clock=clock)

        public_key = config.public_key_material
        self.webhook_verifier = WebhookVerifier(public_key) if public_key else None

        logger.info(f"Initialized DANA HTTP client for partner: {config.base_url}")

    def _send(self, method: str, path: str, headers: Dict[str, str], body: bytes) -> TransportResponse:
        url = self.config.url_for(path)
        logger.debug(f"Making {method} request to {url}")
        return self.transport.send(method, url, headers, body or None, self.config.timeout)

    @staticmethod
    def _decode_json(response: TransportResponse) -> Optional[Dict[str, Any]]:
        if not response.body:
            return None
        try:
            data = json.loads(response.body)
        except (ValueError, UnicodeDecodeError):
            return None
        return data if isinstance(data, dict) else None

    def acquire_token(self) -> TokenGrant:
        """
        Request a B2B access token from the partner.

        This is the authenticator of the default SessionManager; call
        session.ensure_token() instead to benefit from caching.

        Returns:
            TokenGrant: Token value, type and lifetime

        Raises:
            AuthenticationError: If the partner rejected the request (4xx)
            MalformedResponseError: If the response lacks accessToken or expiresIn
            TransportError: On network failure, timeout or a 5xx answer
        """
        signed = self.signer.sign_token_request(self.config.client_id)
        headers = compose_headers(
            HeaderFamily.CLIENT,
            self.config.client_id,
            signed,
            self.config.channel_id
        )
        body = serialize_body(TOKEN_REQUEST_BODY)

        logger.info(f"Requesting access token for client: {self.config.client_id}")
        response = self._send(HttpMethod.POST.value, self.config.token_path, headers, body)

        data = self._decode_json(response)
        response_code = data.get('responseCode') if data else None
        response_message = data.get('responseMessage') if data else None

        if not response.ok or not is_success_code(response_code):
            message = response_message or f"HTTP {response.status_code}"
            rejected = 400 <= response.status_code < 500 or str(response_code or "").startswith("4")
            if not rejected:
                # Partner-side failure; the credentials were never judged
                logger.error(f"Token endpoint unavailable: HTTP {response.status_code}, responseCode={response_code}")
                raise TransportError(
                    f"Token endpoint unavailable: {message}",
                    error_code="PARTNER_UNAVAILABLE",
                    http_status=response.status_code,
                    details={'response_code': response_code, 'response_message': response_message}
                )
            raise AuthenticationError(
                f"Authentication failed: {message}",
                response_code=response_code,
                response_message=response_message,
                http_status=response.status_code
            )

        if data is None:
            raise MalformedResponseError("Token response is not a JSON object", http_status=response.status_code)

        return TokenGrant.from_response(data, http_status=response.status_code)

    def request(
        self,
        method: Union[HttpMethod, str],
        path: str,
        body: RequestBody = None,
        *,
        requires_token: bool = True,
        extra_headers: Optional[Dict[str, str]] = None,
        external_id: Optional[str] = None
    ) -> PartnerResponse:
        """
        Make a signed partner call.

        Args:
            method: HTTP method
            path: Path relative to base_url
            body: dict/list (serialized compactly) or str/bytes (minified as authored)
            requires_token: Resolve and send the bearer token
            extra_headers: Additional headers such as X-DEVICE-ID
            external_id: X-EXTERNAL-ID value (fresh UUID v4 when None)

        Returns:
            PartnerResponse: Parsed successful response

        Raises:
            AuthenticationError: If the token could not be obtained or was rejected
            PartnerAPIError: If the partner reported an error
            MalformedResponseError: If a successful response is not a JSON object
            TransportError: On network failure or timeout
            SigningError: If the request could not be signed
        """
        try:
            method_value = HttpMethod(method.value if isinstance(method, HttpMethod) else str(method).upper()).value
        except ValueError:
            raise ValidationError(f"Unsupported HTTP method: {method}")

        token: Optional[AccessToken] = self.session.ensure_token() if requires_token else None

        body_bytes = serialize_body(body)
        signed = self.signer.sign_call(method_value, path, body_bytes)
        headers = compose_headers(
            HeaderFamily.PARTNER,
            self.config.client_id,
            signed,
            self.config.channel_id,
            access_token=token,
            external_id=external_id,
            extra_headers=extra_headers
        )

        response = self._send(method_value, path, headers, body_bytes)
        return self._classify(response, path, token, headers[HEADER_EXTERNAL_ID])

    def _classify(
        self,
        response: TransportResponse,
        path: str,
        token: Optional[AccessToken],
        external_id: str
    ) -> PartnerResponse:
        data = self._decode_json(response)
        response_code = data.get('responseCode') if data else None
        response_message = data.get('responseMessage') if data else None

        unauthorized = response.status_code == 401 or str(response_code or "").startswith("401")
        if token is not None and unauthorized:
            self.session.invalidate(token)
            raise AuthenticationError(
                f"Partner rejected access token for {path}: {response_message or 'unauthorized'}",
                response_code=response_code,
                response_message=response_message,
                http_status=response.status_code
            )

        if not response.ok or not is_success_code(response_code):
            logger.error(
                f"Partner call {path} failed: HTTP {response.status_code}, "
                f"responseCode={response_code}, responseMessage={response_message}"
            )
            raise PartnerAPIError(
                f"Partner request failed: {response_message or 'HTTP ' + str(response.status_code)}",
                response_code=response_code,
                response_message=response_message,
                http_status=response.status_code,
                details={'path': path, 'external_id': external_id}
            )

        if data is None:
            raise MalformedResponseError(
                f"Invalid JSON response from {path}",
                http_status=response.status_code
            )

        return PartnerResponse(
            http_status=response.status_code,
            data=data,
            external_id=external_id,
            response_code=response_code,
            response_message=response_message
        )

    def post(self, path: str, body: RequestBody = None, **kwargs) -> PartnerResponse:
        """Signed POST; see request()."""
        return self.request(HttpMethod.POST, path, body, **kwargs)

    def get(self, path: str, **kwargs) -> PartnerResponse:
        """Signed GET; see request()."""
        return self.request(HttpMethod.GET, path, None, **kwargs)

    def verify_webhook(self, raw_body: bytes, signature: Optional[str]) -> bool:
        """
        Verify an inbound webhook against the partner's public key.

        Returns False when no public key is configured.
        """
        if self.webhook_verifier is None:
            logger.warning("Webhook rejected: no partner public key configured")
            return False
        return self.webhook_verifier.verify(raw_body, signature)

    def close(self) -> None:
        """Close the underlying transport."""
        self.transport.close()

    def __enter__(self) -> 'DanaHttpClient':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def create_client(
    base_url: str,
    client_id: str,
    private_key: str,
    public_key: Optional[str] = None,
    timeout: float = 30.0,
    **kwargs
) -> DanaHttpClient:
    """
    Create a partner HTTP client with default configuration.

    Args:
        base_url: Partner API origin
        client_id: Partner-issued client id
        private_key: Base64 RSA private key
        public_key: Partner's base64 RSA public key (for webhooks)
        timeout: Request timeout in seconds
        **kwargs: Further PartnerConfig fields

    Returns:
        DanaHttpClient: Configured client
    """
    config = PartnerConfig(
        base_url=base_url,
        client_id=client_id,
        private_key=private_key,
        public_key=public_key,
        timeout=timeout,
        **kwargs
    )
    return DanaHttpClient(config)
