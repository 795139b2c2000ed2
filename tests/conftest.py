"""
Pytest Configuration and Fixtures
"""

import time
from typing import Any, Dict, List, Optional, Tuple

import pytest
from azure.core.credentials import AccessToken
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwt
from jose.utils import long_to_base64

AUTHORITY = "https://login.example.test/tenant-1/v2.0"
JWKS_URI = "https://login.example.test/tenant-1/discovery/v2.0/keys"
AUDIENCE = "api://downstream-app"
CLIENT_ID = "downstream-client-id"
KEY_ID = "test-key-1"


class StubCredential:
    """Async credential returning a fixed token and recording requested scopes."""

    def __init__(self, token: str = "T1", error: Optional[Exception] = None) -> None:
        self.token = token
        self.error = error
        self.requests: List[Tuple[str, ...]] = []
        self.closed = False

    async def get_token(self, *scopes: str, **kwargs: Any) -> AccessToken:
        self.requests.append(scopes)
        if self.error is not None:
            raise self.error
        return AccessToken(self.token, int(time.time()) + 3600)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def stub_credential() -> StubCredential:
    return StubCredential()


@pytest.fixture(scope="session")
def signing_key():
    """RSA key pair used to sign test tokens, with its public JWK."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    numbers = private_key.public_key().public_numbers()
    public_jwk = {
        "kty": "RSA",
        "use": "sig",
        "kid": KEY_ID,
        "n": long_to_base64(numbers.n).decode(),
        "e": long_to_base64(numbers.e).decode(),
    }
    return private_pem, public_jwk


@pytest.fixture
def make_token(signing_key):
    """Factory for RS256 tokens signed with the test key."""
    private_pem, _ = signing_key

    def _make(kid: str = KEY_ID, **overrides: Any) -> str:
        now = int(time.time())
        claims: Dict[str, Any] = {
            "iss": AUTHORITY,
            "aud": AUDIENCE,
            "sub": "managed-identity-object-id",
            "oid": "managed-identity-object-id",
            "tid": "tenant-1",
            "appid": "caller-app-id",
            "roles": ["Forecast.Read"],
            "iat": now - 10,
            "nbf": now - 10,
            "exp": now + 600,
        }
        claims.update(overrides)
        return jwt.encode(claims, private_pem, algorithm="RS256", headers={"kid": kid})

    return _make
