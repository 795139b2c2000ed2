"""
JWT validation for bearer tokens presented to the downstream service.

Signature, expiry and not-before checks are done by python-jose against the
signing keys published by the configured authority.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import httpx
from jose import JWTError, jwk, jwt

from entra_relay.config import AzureAdConfig

logger = logging.getLogger(__name__)


class JWTValidator:
    """
    Validates Entra ID access tokens for one authority.

    Handles OpenID Connect discovery, caching of the JWKS (JSON Web Key
    Set), and validation of issuer and audience.
    """

    def __init__(
        self,
        azure_ad: AzureAdConfig,
        jwks_cache_ttl: int = 86400,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not azure_ad.enabled:
            raise ValueError("JWTValidator requires AzureAd:Authority to be configured")

        self.azure_ad = azure_ad
        self.jwks_cache_ttl = jwks_cache_ttl
        self._jwks_cache: Dict[str, Any] = {}
        self._jwks_cache_time: Optional[datetime] = None
        self._openid_config: Optional[Dict[str, Any]] = None
        self._http_client = http_client
        logger.info(f"JWTValidator initialized for authority {azure_ad.authority}")

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=30.0)
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP client when shutting down."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
            logger.info("JWTValidator HTTP client closed")

    @staticmethod
    def _parse_document(response: httpx.Response) -> Dict[str, Any]:
        """Decode a JSON object body, raising ValueError for anything else."""
        document = response.json()
        if not isinstance(document, dict):
            raise ValueError(f"Expected a JSON object from {response.url}")
        return document

    async def _fetch_openid_config(self) -> Dict[str, Any]:
        """
        Fetch the OpenID Connect configuration document.

        Returns:
            Dict containing OpenID configuration metadata
        """
        if self._openid_config is not None:
            return self._openid_config

        url = self.azure_ad.openid_config_url
        try:
            logger.info(f"Fetching OpenID config from {url}")
            response = await self.http_client.get(url)
            response.raise_for_status()
            self._openid_config = self._parse_document(response)
            return self._openid_config
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to fetch OpenID configuration: {e}")
            raise ValueError(f"Unable to fetch OpenID configuration: {e}")

    async def _fetch_jwks(self) -> Dict[str, Any]:
        """
        Fetch the JWKS, reusing the cached copy until the TTL runs out.
        """
        if self._jwks_cache and self._jwks_cache_time:
            cache_age = datetime.now(timezone.utc) - self._jwks_cache_time
            if cache_age < timedelta(seconds=self.jwks_cache_ttl):
                logger.debug("Using cached JWKS")
                return self._jwks_cache

        openid_config = await self._fetch_openid_config()
        jwks_uri = openid_config.get("jwks_uri")
        if not jwks_uri:
            raise ValueError("jwks_uri not found in OpenID configuration")

        try:
            logger.info(f"Fetching JWKS from {jwks_uri}")
            response = await self.http_client.get(jwks_uri)
            response.raise_for_status()
            jwks = self._parse_document(response)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to fetch JWKS: {e}")
            raise ValueError(f"Unable to fetch JWKS: {e}")

        self._jwks_cache = jwks
        self._jwks_cache_time = datetime.now(timezone.utc)
        return self._jwks_cache

    async def _get_signing_key(self, token: str) -> Dict[str, Any]:
        """
        Get the signing key for a token based on its 'kid' header.
        """
        try:
            unverified_header = jwt.get_unverified_header(token)
        except JWTError as e:
            logger.warning(f"Error decoding token header: {e}")
            raise ValueError(f"Invalid token format: {e}")

        kid = unverified_header.get("kid")
        if not kid:
            raise ValueError("Token header missing 'kid' (key ID)")

        jwks = await self._fetch_jwks()
        for key in jwks.get("keys", []):
            if key.get("kid") == kid:
                return key

        raise ValueError(f"Unable to find signing key with kid: {kid}")

    async def validate_token(self, token: str) -> Dict[str, Any]:
        """
        Validate a bearer token.

        Checks the RS256 signature against the authority's JWKS, expiry,
        not-before, the issuer advertised by the authority, and that the
        audience is one of the configured audience or client ID.

        Args:
            token: The JWT token string (without the 'Bearer ' prefix)

        Returns:
            Dict containing the validated token claims

        Raises:
            ValueError: If token validation fails
        """
        signing_key = dict(await self._get_signing_key(token))
        # Entra ID keys often omit alg
        signing_key.setdefault("alg", "RS256")

        try:
            public_key = jwk.construct(signing_key).to_pem()
        except Exception as e:
            logger.error(f"Failed to construct public key from JWK: {e}")
            raise ValueError(f"Unable to construct public key: {e}")

        openid_config = await self._fetch_openid_config()

        try:
            payload = jwt.decode(
                token,
                public_key,
                algorithms=["RS256"],
                issuer=openid_config.get("issuer"),
                options={
                    "verify_signature": True,
                    "verify_aud": False,
                    "verify_iss": "issuer" in openid_config,
                    "verify_exp": True,
                    "verify_nbf": True,
                },
            )
        except JWTError as e:
            logger.warning(f"JWT validation failed: {e}")
            raise ValueError(f"Token validation failed: {e}")

        self._validate_audience(payload)

        logger.info(f"Token validated for subject: {payload.get('sub', 'unknown')}")
        return payload

    def _validate_audience(self, payload: Dict[str, Any]) -> None:
        """
        Check the aud claim against every accepted audience.

        python-jose only compares against a single audience, so this is
        done here instead. With no audience configured every token is
        rejected.
        """
        valid = self.azure_ad.valid_audiences
        if not valid:
            raise ValueError("No valid audience configured (AzureAd:Audience or AzureAd:ClientId)")

        aud = payload.get("aud")
        token_audiences = aud if isinstance(aud, list) else [aud]
        if not any(a in valid for a in token_audiences if a):
            raise ValueError(f"Invalid audience {aud!r}. Expected one of {valid}")
