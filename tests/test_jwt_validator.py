"""
Tests for JWTValidator with a mocked OpenID discovery endpoint.
"""

import time

import httpx
import pytest

from conftest import AUDIENCE, AUTHORITY, CLIENT_ID, JWKS_URI
from entra_relay.auth.jwt_validator import JWTValidator
from entra_relay.config import AzureAdConfig


@pytest.fixture
def discovery(signing_key):
    """Mock transport serving the OpenID configuration and JWKS, counting requests."""
    _, public_jwk = signing_key
    calls = {"openid": 0, "jwks": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url == f"{AUTHORITY}/.well-known/openid-configuration":
            calls["openid"] += 1
            return httpx.Response(200, json={"issuer": AUTHORITY, "jwks_uri": JWKS_URI})
        if url == JWKS_URI:
            calls["jwks"] += 1
            return httpx.Response(200, json={"keys": [public_jwk]})
        return httpx.Response(404)

    return handler, calls


@pytest.fixture
def validator(discovery):
    handler, _ = discovery
    azure_ad = AzureAdConfig(authority=AUTHORITY, audience=AUDIENCE, client_id=CLIENT_ID)
    return JWTValidator(
        azure_ad,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


class TestJWTValidator:
    """Tests for bearer token validation."""

    def test_requires_authority(self):
        with pytest.raises(ValueError):
            JWTValidator(AzureAdConfig())

    async def test_valid_token(self, validator, make_token):
        payload = await validator.validate_token(make_token())

        assert payload["sub"] == "managed-identity-object-id"
        assert payload["aud"] == AUDIENCE

    async def test_client_id_is_accepted_audience(self, validator, make_token):
        payload = await validator.validate_token(make_token(aud=CLIENT_ID))

        assert payload["aud"] == CLIENT_ID

    async def test_wrong_audience_rejected(self, validator, make_token):
        with pytest.raises(ValueError, match="audience"):
            await validator.validate_token(make_token(aud="api://someone-else"))

    async def test_wrong_issuer_rejected(self, validator, make_token):
        with pytest.raises(ValueError):
            await validator.validate_token(make_token(iss="https://evil.example.test/v2.0"))

    async def test_expired_token_rejected(self, validator, make_token):
        now = int(time.time())
        with pytest.raises(ValueError):
            await validator.validate_token(make_token(iat=now - 7200, nbf=now - 7200, exp=now - 3600))

    async def test_unknown_key_rejected(self, validator, make_token):
        with pytest.raises(ValueError, match="kid"):
            await validator.validate_token(make_token(kid="rotated-away"))

    async def test_garbage_token_rejected(self, validator):
        with pytest.raises(ValueError):
            await validator.validate_token("not-a-jwt")

    async def test_jwks_is_cached(self, validator, discovery, make_token):
        _, calls = discovery

        await validator.validate_token(make_token())
        await validator.validate_token(make_token())

        assert calls == {"openid": 1, "jwks": 1}

    async def test_expired_cache_refetches_jwks(self, discovery, make_token):
        handler, calls = discovery
        validator = JWTValidator(
            AzureAdConfig(authority=AUTHORITY, audience=AUDIENCE),
            jwks_cache_ttl=0,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )

        await validator.validate_token(make_token())
        await validator.validate_token(make_token())

        assert calls["jwks"] == 2
        assert calls["openid"] == 1

    async def test_discovery_failure_is_a_validation_error(self, make_token):
        validator = JWTValidator(
            AzureAdConfig(authority=AUTHORITY, audience=AUDIENCE),
            http_client=httpx.AsyncClient(
                transport=httpx.MockTransport(lambda request: httpx.Response(503))
            ),
        )

        with pytest.raises(ValueError, match="OpenID configuration"):
            await validator.validate_token(make_token())

    async def test_no_configured_audience_rejects_every_token(self, discovery, make_token):
        """Authority without audience or client ID must not accept foreign tokens."""
        handler, _ = discovery
        validator = JWTValidator(
            AzureAdConfig(authority=AUTHORITY),
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )

        with pytest.raises(ValueError, match="audience"):
            await validator.validate_token(make_token(aud="https://graph.microsoft.com"))
        with pytest.raises(ValueError, match="audience"):
            await validator.validate_token(make_token())

    @pytest.mark.parametrize("body", [b"<html>maintenance</html>", b"[]"])
    async def test_malformed_discovery_document_is_a_validation_error(self, make_token, body):
        validator = JWTValidator(
            AzureAdConfig(authority=AUTHORITY, audience=AUDIENCE),
            http_client=httpx.AsyncClient(
                transport=httpx.MockTransport(lambda request: httpx.Response(200, content=body))
            ),
        )

        with pytest.raises(ValueError, match="OpenID configuration"):
            await validator.validate_token(make_token())

    async def test_malformed_jwks_is_a_validation_error(self, make_token):
        def handler(request: httpx.Request) -> httpx.Response:
            if str(request.url) == JWKS_URI:
                return httpx.Response(200, content=b"not json")
            return httpx.Response(200, json={"issuer": AUTHORITY, "jwks_uri": JWKS_URI})

        validator = JWTValidator(
            AzureAdConfig(authority=AUTHORITY, audience=AUDIENCE),
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )

        with pytest.raises(ValueError, match="JWKS"):
            await validator.validate_token(make_token())

    async def test_close_releases_client(self, validator):
        await validator.close()

        assert validator._http_client is None
