"""
Shared fixtures for the DANA SDK test suite
"""

import base64
import json
from typing import Any, Dict, List, Optional, Union

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from dana_sdk.config import PartnerConfig
from dana_sdk.http_client import TransportResponse


def _generate_keypair():
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_der = private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    )
    public_der = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    )
    return (
        base64.b64encode(private_der).decode("ascii"),
        base64.b64encode(public_der).decode("ascii"),
    )


@pytest.fixture(scope="session")
def rsa_keypair():
    """(private, public) base64 DER keys, generated once per test run"""
    return _generate_keypair()


@pytest.fixture(scope="session")
def other_rsa_keypair():
    """A second, unrelated key pair"""
    return _generate_keypair()


@pytest.fixture
def private_key_b64(rsa_keypair):
    return rsa_keypair[0]


@pytest.fixture
def public_key_b64(rsa_keypair):
    return rsa_keypair[1]


class FakeClock:
    """Manually advanced clock for token expiry tests"""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTransport:
    """
    Transport double that records sent requests and replays queued responses.

    Queue entries are TransportResponse objects or exceptions to raise.
    """

    def __init__(self, responses: Optional[List[Union[TransportResponse, Exception]]] = None):
        self.responses = list(responses or [])
        self.requests: List[Dict[str, Any]] = []
        self.closed = False

    def queue_json(self, data: Dict[str, Any], status_code: int = 200) -> None:
        self.responses.append(TransportResponse(status_code, json.dumps(data).encode("utf-8")))

    def queue(self, item: Union[TransportResponse, Exception]) -> None:
        self.responses.append(item)

    def send(self, method, url, headers, body, timeout):
        self.requests.append({
            'method': method,
            'url': url,
            'headers': dict(headers),
            'body': body,
            'timeout': timeout,
        })
        if not self.responses:
            raise AssertionError(f"Unexpected request: {method} {url}")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self) -> None:
        self.closed = True


def token_response(access_token: str = "token-abc-123", expires_in: Any = 900,
                   token_type: str = "Bearer") -> Dict[str, Any]:
    return {
        "responseCode": "2007300",
        "responseMessage": "Successful",
        "accessToken": access_token,
        "tokenType": token_type,
        "expiresIn": expires_in,
    }


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def partner_config(rsa_keypair):
    private_key, public_key = rsa_keypair
    return PartnerConfig(
        base_url="https://api.sandbox.dana.id",
        client_id="2023080312345678",
        private_key=private_key,
        public_key=public_key,
        timeout=5.0,
    )
