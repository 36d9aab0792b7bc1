"""
Tests for the access-token SessionManager

Covers caching against an injected clock, expiry, single-flight coalescing
across threads and asyncio tasks, and state handling on failures.
"""

import asyncio
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock

import pytest

from conftest import FakeClock
from dana_sdk.exceptions import AuthenticationError, MalformedResponseError, TransportTimeoutError
from dana_sdk.session import AccessToken, SessionManager, SessionState, TokenGrant


class TestTokenGrant:
    """Test parsing of token endpoint responses"""

    def test_from_response(self):
        grant = TokenGrant.from_response({"accessToken": "abc", "expiresIn": 900, "tokenType": "Bearer"})
        assert grant == TokenGrant(access_token="abc", expires_in=900.0, token_type="Bearer")

    def test_numeric_string_expiry(self):
        assert TokenGrant.from_response({"accessToken": "abc", "expiresIn": "900"}).expires_in == 900.0

    def test_token_type_defaults_to_bearer(self):
        assert TokenGrant.from_response({"accessToken": "abc", "expiresIn": 60}).token_type == "Bearer"

    def test_missing_access_token(self):
        with pytest.raises(MalformedResponseError) as exc_info:
            TokenGrant.from_response({"expiresIn": 900}, http_status=200)
        assert exc_info.value.details["missing_fields"] == ["accessToken"]
        assert exc_info.value.http_status == 200

    def test_missing_expiry(self):
        with pytest.raises(MalformedResponseError):
            TokenGrant.from_response({"accessToken": "abc"})

    def test_non_numeric_expiry(self):
        with pytest.raises(MalformedResponseError):
            TokenGrant.from_response({"accessToken": "abc", "expiresIn": "soon"})

    def test_non_positive_expiry(self):
        with pytest.raises(MalformedResponseError):
            TokenGrant(access_token="abc", expires_in=0)

    @pytest.mark.parametrize("expires_in", ["NaN", "nan", "inf", "-inf", "Infinity", float("nan"), float("inf")])
    def test_non_finite_expiry(self, expires_in):
        with pytest.raises(MalformedResponseError):
            TokenGrant.from_response({"accessToken": "abc", "expiresIn": expires_in})

    def test_malformed_is_authentication_error(self):
        with pytest.raises(AuthenticationError):
            TokenGrant.from_response([])


class TestAccessToken:
    """Test AccessToken expiry and masking"""

    def test_expired_at_boundary(self):
        token = AccessToken(value="abc", token_type="Bearer", expires_at=100.0)
        assert not token.is_expired(99.999)
        assert token.is_expired(100.0)

    def test_repr_masks_value(self):
        token = AccessToken(value="super-secret-token-value", token_type="Bearer", expires_at=1.0)
        assert "super-secret-token-value" not in repr(token)


class TestSessionManagerCaching:
    """Test token caching and expiry"""

    def setup_method(self):
        self.clock = FakeClock()
        self.authenticate = Mock(return_value=TokenGrant(access_token="token-1", expires_in=900))
        self.manager = SessionManager(self.authenticate, clock=self.clock)

    def test_initial_state(self):
        assert self.manager.state == SessionState.UNAUTHENTICATED
        assert self.manager.current_token is None
        self.authenticate.assert_not_called()

    def test_first_call_authenticates(self):
        token = self.manager.ensure_token()

        assert token.value == "token-1"
        assert token.token_type == "Bearer"
        assert token.expires_at == self.clock.now + 900
        assert self.manager.state == SessionState.VALID
        self.authenticate.assert_called_once()

    def test_cached_token_reused(self):
        first = self.manager.ensure_token()
        self.clock.advance(10)
        second = self.manager.ensure_token()

        assert second is first
        assert self.authenticate.call_count == 1

    def test_expired_token_triggers_one_authentication(self):
        self.manager.ensure_token()
        self.authenticate.return_value = TokenGrant(access_token="token-2", expires_in=900)
        self.clock.advance(900)

        assert self.manager.state == SessionState.EXPIRED
        assert self.manager.current_token is None

        token = self.manager.ensure_token()
        assert token.value == "token-2"
        assert self.authenticate.call_count == 2
        assert self.manager.state == SessionState.VALID

    def test_expired_token_never_returned(self):
        self.manager.ensure_token()
        self.clock.advance(901)
        self.authenticate.return_value = TokenGrant(access_token="token-2", expires_in=900)

        token = self.manager.ensure_token()
        assert not token.is_expired(self.clock())

    def test_invalidate_forces_new_authentication(self):
        self.manager.ensure_token()
        self.manager.invalidate()

        assert self.manager.state == SessionState.UNAUTHENTICATED
        self.manager.ensure_token()
        assert self.authenticate.call_count == 2

    def test_invalidate_ignores_superseded_token(self):
        self.authenticate.side_effect = [
            TokenGrant(access_token="token-1", expires_in=60),
            TokenGrant(access_token="token-2", expires_in=900),
        ]
        stale = self.manager.ensure_token()
        self.clock.advance(60)
        fresh = self.manager.ensure_token()

        self.manager.invalidate(stale)

        assert self.manager.state == SessionState.VALID
        assert self.manager.ensure_token() is fresh
        assert self.authenticate.call_count == 2

    def test_invalidate_matching_token(self):
        token = self.manager.ensure_token()
        self.manager.invalidate(token)

        assert self.manager.state == SessionState.UNAUTHENTICATED
        assert self.manager.current_token is None

    def test_non_finite_expiry_never_cached(self):
        self.authenticate.side_effect = lambda: TokenGrant.from_response({"accessToken": "abc", "expiresIn": "NaN"})

        with pytest.raises(MalformedResponseError):
            self.manager.ensure_token()
        assert self.manager.state == SessionState.UNAUTHENTICATED
        assert self.manager.current_token is None

    def test_authentication_count(self):
        self.manager.ensure_token()
        self.manager.ensure_token()
        assert self.manager.authentication_count == 1

    def test_authenticator_must_return_grant(self):
        self.authenticate.return_value = {"accessToken": "abc"}
        with pytest.raises(MalformedResponseError):
            self.manager.ensure_token()
        assert self.manager.state == SessionState.UNAUTHENTICATED


class TestSessionManagerFailures:
    """Test state handling when authentication fails"""

    def setup_method(self):
        self.clock = FakeClock()
        self.authenticate = Mock()
        self.manager = SessionManager(self.authenticate, clock=self.clock)

    def test_authentication_error_leaves_unauthenticated(self):
        self.authenticate.side_effect = AuthenticationError("rejected", response_code="4017300")

        with pytest.raises(AuthenticationError):
            self.manager.ensure_token()

        assert self.manager.state == SessionState.UNAUTHENTICATED
        assert self.manager.current_token is None

    def test_no_automatic_retry(self):
        self.authenticate.side_effect = AuthenticationError("rejected")

        with pytest.raises(AuthenticationError):
            self.manager.ensure_token()
        assert self.authenticate.call_count == 1

    def test_rejection_drops_expired_token(self):
        self.authenticate.return_value = TokenGrant(access_token="token-1", expires_in=60)
        self.manager.ensure_token()
        self.clock.advance(60)
        self.authenticate.side_effect = AuthenticationError("rejected")

        with pytest.raises(AuthenticationError):
            self.manager.ensure_token()
        assert self.manager.state == SessionState.UNAUTHENTICATED

    def test_timeout_restores_prior_state(self):
        self.authenticate.return_value = TokenGrant(access_token="token-1", expires_in=60)
        first = self.manager.ensure_token()
        self.clock.advance(60)
        self.authenticate.side_effect = TransportTimeoutError("timed out", timeout=5.0)

        with pytest.raises(TransportTimeoutError):
            self.manager.ensure_token()

        assert self.manager.state == SessionState.EXPIRED
        assert self.manager.current_token is None
        # Prior (expired) token is retained but never handed out
        assert self.manager._token is first

    def test_timeout_from_unauthenticated(self):
        self.authenticate.side_effect = TransportTimeoutError("timed out", timeout=5.0)

        with pytest.raises(TransportTimeoutError):
            self.manager.ensure_token()
        assert self.manager.state == SessionState.UNAUTHENTICATED

    def test_recovers_after_failure(self):
        self.authenticate.side_effect = [
            TransportTimeoutError("timed out", timeout=5.0),
            TokenGrant(access_token="token-1", expires_in=60),
        ]

        with pytest.raises(TransportTimeoutError):
            self.manager.ensure_token()
        assert self.manager.ensure_token().value == "token-1"


class TestSingleFlight:
    """Test coalescing of concurrent authentication"""

    def setup_method(self):
        self.release = threading.Event()
        self.started = threading.Event()
        self.calls = 0
        self.lock = threading.Lock()

    def _slow_authenticate(self, result):
        def authenticate():
            with self.lock:
                self.calls += 1
            self.started.set()
            assert self.release.wait(5)
            if isinstance(result, Exception):
                raise result
            return result
        return authenticate

    def _run_concurrently(self, manager, count=10):
        arrived = []

        def call():
            with self.lock:
                arrived.append(1)
            return manager.ensure_token()

        with ThreadPoolExecutor(max_workers=count) as pool:
            futures = [pool.submit(call) for _ in range(count)]
            assert self.started.wait(5)
            deadline = time.time() + 5
            while time.time() < deadline and len(arrived) < count:
                time.sleep(0.01)
            # Let the last arrivals reach the in-flight wait
            time.sleep(0.1)
            self.release.set()
            outcomes = []
            for future in futures:
                try:
                    outcomes.append(future.result(timeout=5))
                except Exception as e:
                    outcomes.append(e)
        return outcomes

    def test_concurrent_callers_share_one_authentication(self):
        manager = SessionManager(self._slow_authenticate(TokenGrant(access_token="shared", expires_in=900)))

        tokens = self._run_concurrently(manager)

        assert self.calls == 1
        assert all(token is tokens[0] for token in tokens)
        assert tokens[0].value == "shared"

    def test_concurrent_callers_share_failure(self):
        error = AuthenticationError("rejected")
        manager = SessionManager(self._slow_authenticate(error))

        outcomes = self._run_concurrently(manager)

        assert self.calls == 1
        assert all(outcome is error for outcome in outcomes)
        assert manager.state == SessionState.UNAUTHENTICATED

    def test_state_is_authenticating_while_in_flight(self):
        manager = SessionManager(self._slow_authenticate(TokenGrant(access_token="t", expires_in=900)))
        thread = threading.Thread(target=manager.ensure_token)
        thread.start()
        assert self.started.wait(5)

        assert manager.state == SessionState.AUTHENTICATING

        self.release.set()
        thread.join(5)
        assert manager.state == SessionState.VALID


class TestAsyncSession:
    """Test the awaitable entry point"""

    @pytest.mark.asyncio
    async def test_gathered_calls_authenticate_once(self):
        calls = []

        def authenticate():
            calls.append(1)
            time.sleep(0.05)
            return TokenGrant(access_token="async-token", expires_in=900)

        manager = SessionManager(authenticate)
        tokens = await asyncio.gather(*(manager.ensure_token_async() for _ in range(5)))

        assert len(calls) == 1
        assert {token.value for token in tokens} == {"async-token"}

    @pytest.mark.asyncio
    async def test_cached_token_returned_without_executor(self):
        manager = SessionManager(Mock(return_value=TokenGrant(access_token="t", expires_in=900)))
        first = manager.ensure_token()

        assert await manager.ensure_token_async() is first

    @pytest.mark.asyncio
    async def test_failure_propagates(self):
        manager = SessionManager(Mock(side_effect=AuthenticationError("rejected")))

        with pytest.raises(AuthenticationError):
            await manager.ensure_token_async()
