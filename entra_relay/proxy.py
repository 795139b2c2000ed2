"""
Authenticated calls from the caller service to the downstream API.
"""

import logging

import httpx

from entra_relay.auth.token_provider import TokenProvider
from entra_relay.errors import UpstreamError

logger = logging.getLogger(__name__)


class DownstreamClient:
    """
    Calls the downstream API with a bearer token from a TokenProvider.

    The httpx client carries the downstream base URL. Each call makes a
    single attempt; failures are raised, never retried.
    """

    def __init__(self, http_client: httpx.AsyncClient, token_provider: TokenProvider) -> None:
        self.http_client = http_client
        self.token_provider = token_provider

    async def proxy(self, downstream_path: str, scope_or_resource: str) -> bytes:
        """
        GET a downstream path and return the response body untouched.

        Args:
            downstream_path: Path relative to the downstream base URL
            scope_or_resource: Scope or resource to request a token for

        Returns:
            The raw downstream response body

        Raises:
            InvalidArgument: If scope_or_resource is blank
            CredentialFailure: If no token could be acquired
            UpstreamError: If the downstream call failed or returned non-2xx
        """
        token = await self.token_provider.get_access_token(scope_or_resource)

        try:
            response = await self.http_client.get(
                downstream_path,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as e:
            logger.error(f"Downstream request to {downstream_path} failed: {e}")
            raise UpstreamError(f"Downstream request failed: {e}") from e

        if not response.is_success:
            logger.warning(
                f"Downstream returned {response.status_code} for {downstream_path}"
            )
            raise UpstreamError(
                f"Downstream returned status {response.status_code}",
                status_code=response.status_code,
            )

        return response.content
