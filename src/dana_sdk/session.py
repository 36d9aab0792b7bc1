"""
Bearer token session management for the partner API

The SessionManager owns the single cached AccessToken and the authentication
state machine:

    UNAUTHENTICATED --ensure_token()--> AUTHENTICATING --success--> VALID
    AUTHENTICATING  --auth failure--> UNAUTHENTICATED (no token kept)
    VALID           --now >= expires_at--> EXPIRED
    EXPIRED         --ensure_token()--> AUTHENTICATING

Concurrent callers that find no usable token share one in-flight
authentication attempt and all receive its token or its exception.
"""

import asyncio
import logging
import math
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

from .exceptions import AuthenticationError, MalformedResponseError
from .signing.utils import mask_secret

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TYPE = "Bearer"


class SessionState(str, Enum):
    """Authentication state of a SessionManager"""
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    VALID = "valid"
    EXPIRED = "expired"


@dataclass(frozen=True)
class TokenGrant:
    """
    Token returned by the partner's token endpoint, before it is cached

    Attributes:
        access_token: Opaque token value
        expires_in: Lifetime in seconds
        token_type: Authorization scheme, usually "Bearer"
    """
    access_token: str
    expires_in: float
    token_type: str = DEFAULT_TOKEN_TYPE

    def __post_init__(self):
        if not self.access_token or not isinstance(self.access_token, str):
            raise MalformedResponseError("Token response is missing accessToken")

        if not math.isfinite(self.expires_in) or self.expires_in <= 0:
            raise MalformedResponseError(
                f"Token response has invalid expiresIn: {self.expires_in}",
                details={"expires_in": self.expires_in}
            )

    @classmethod
    def from_response(cls, data: Dict[str, Any], http_status: int = 0) -> 'TokenGrant':
        """
        Parse a token endpoint response body.

        Raises:
            MalformedResponseError: If accessToken or expiresIn is absent or invalid
        """
        if not isinstance(data, dict):
            raise MalformedResponseError("Token response is not a JSON object", http_status=http_status)

        access_token = data.get("accessToken")
        expires_in = data.get("expiresIn")
        if not access_token or expires_in is None:
            missing = [name for name in ("accessToken", "expiresIn") if not data.get(name)]
            raise MalformedResponseError(
                f"Token response is missing required fields: {', '.join(missing)}",
                http_status=http_status,
                details={"missing_fields": missing}
            )

        try:
            expires_in = float(expires_in)
        except (TypeError, ValueError):
            raise MalformedResponseError(
                f"Token response has invalid expiresIn: {expires_in!r}",
                http_status=http_status
            )

        return cls(
            access_token=str(access_token),
            expires_in=expires_in,
            token_type=data.get("tokenType") or DEFAULT_TOKEN_TYPE
        )


@dataclass(frozen=True)
class AccessToken:
    """
    Cached bearer token

    Attributes:
        value: Opaque token value
        token_type: Authorization scheme
        expires_at: Expiry instant in seconds on the owning manager's clock
    """
    value: str
    token_type: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        """A token is expired from expires_at onwards."""
        return now >= self.expires_at

    def __repr__(self) -> str:
        return (f"AccessToken(value={mask_secret(self.value)!r}, "
                f"token_type={self.token_type!r}, expires_at={self.expires_at})")


class _Flight:
    """One in-flight authentication attempt shared by concurrent callers"""

    def __init__(self):
        self._done = threading.Event()
        self._token: Optional[AccessToken] = None
        self._error: Optional[BaseException] = None

    def resolve(self, token: AccessToken) -> None:
        self._token = token
        self._done.set()

    def reject(self, error: BaseException) -> None:
        self._error = error
        self._done.set()

    def wait(self) -> AccessToken:
        self._done.wait()
        if self._error is not None:
            raise self._error
        return self._token


class SessionManager:
    """
    Thread-safe owner of the partner access token.

    The manager performs no automatic retries. Authentication failures leave
    it UNAUTHENTICATED; transport failures and timeouts restore whatever
    state and token it held before the attempt.
    """

    def __init__(
        self,
        authenticate: Callable[[], TokenGrant],
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize the session manager.

        Args:
            authenticate: Performs one token request and returns its TokenGrant
            clock: Source of the current time in seconds
        """
        self._authenticate = authenticate
        self._clock = clock
        self._lock = threading.Lock()
        self._state = SessionState.UNAUTHENTICATED
        self._token: Optional[AccessToken] = None
        self._flight: Optional[_Flight] = None
        self._authentication_count = 0

    def _usable_token_locked(self) -> Optional[AccessToken]:
        token = self._token
        if token is None:
            return None
        if token.is_expired(self._clock()):
            if self._state == SessionState.VALID:
                self._state = SessionState.EXPIRED
                logger.debug("Access token expired")
            return None
        return token

    @property
    def state(self) -> SessionState:
        """Current state; a lapsed VALID token is reported as EXPIRED."""
        with self._lock:
            self._usable_token_locked()
            return self._state

    @property
    def current_token(self) -> Optional[AccessToken]:
        """Snapshot of the cached token, or None if absent or expired."""
        with self._lock:
            return self._usable_token_locked()

    @property
    def authentication_count(self) -> int:
        """Number of authentication attempts started by this manager."""
        with self._lock:
            return self._authentication_count

    def ensure_token(self) -> AccessToken:
        """
        Return a valid access token, authenticating only when needed.

        Returns:
            AccessToken: A token with now < expires_at

        Raises:
            AuthenticationError: If the partner rejected the token request
            TransportError: If the token request could not be completed
        """
        with self._lock:
            token = self._usable_token_locked()
            if token is not None:
                return token

            flight = self._flight
            is_leader = flight is None
            if is_leader:
                flight = self._flight = _Flight()
                prior = (self._state, self._token)
                self._state = SessionState.AUTHENTICATING
                self._authentication_count += 1

        if not is_leader:
            return flight.wait()

        return self._run_flight(flight, prior)

    def _run_flight(self, flight: _Flight, prior: Tuple[SessionState, Optional[AccessToken]]) -> AccessToken:
        try:
            grant = self._authenticate()
            if not isinstance(grant, TokenGrant):
                raise MalformedResponseError(
                    f"Authenticator returned {type(grant).__name__}, expected TokenGrant"
                )
        except AuthenticationError as e:
            with self._lock:
                self._token = None
                self._state = SessionState.UNAUTHENTICATED
                self._flight = None
            logger.error(f"Authentication failed: {e}")
            flight.reject(e)
            raise
        except BaseException as e:
            with self._lock:
                self._state, self._token = prior
                self._flight = None
            logger.error(f"Authentication attempt aborted: {e}")
            flight.reject(e)
            raise

        token = AccessToken(
            value=grant.access_token,
            token_type=grant.token_type,
            expires_at=self._clock() + grant.expires_in
        )
        with self._lock:
            self._token = token
            self._state = SessionState.VALID
            self._flight = None

        logger.info(f"Authenticated with partner API, token valid for {grant.expires_in:.0f}s")
        flight.resolve(token)
        return token

    async def ensure_token_async(self) -> AccessToken:
        """
        Awaitable ensure_token() for asyncio callers.

        The blocking path runs in the default executor and shares the same
        single-flight as threaded callers.
        """
        token = self.current_token
        if token is not None:
            return token

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.ensure_token)

    def invalidate(self, token: Optional[AccessToken] = None) -> None:
        """
        Drop the cached token after the partner rejected it.

        Args:
            token: The token the rejected request carried. When it is no
                longer the cached one, a newer token has already replaced it
                and nothing is dropped. None drops whatever is cached.
        """
        with self._lock:
            if token is not None and self._token is not token:
                logger.debug("Ignoring rejection of a superseded access token")
                return
            self._token = None
            if self._state != SessionState.AUTHENTICATING:
                self._state = SessionState.UNAUTHENTICATED
        logger.info("Access token invalidated")
