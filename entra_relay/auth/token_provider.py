"""
Access token acquisition for the downstream API using Azure managed identity.
"""

import logging

from azure.core.credentials_async import AsyncTokenCredential
from azure.core.exceptions import AzureError
from azure.identity.aio import DefaultAzureCredential

from entra_relay.auth.scopes import normalize_scope
from entra_relay.config import ManagedIdentityConfig
from entra_relay.errors import CredentialFailure

logger = logging.getLogger(__name__)


def build_credential(managed_identity: ManagedIdentityConfig) -> AsyncTokenCredential:
    """
    Create the credential used to obtain tokens.

    When a client ID is configured the user-assigned managed identity with
    that ID is selected; otherwise DefaultAzureCredential walks its usual
    chain (environment, system-assigned identity, developer logins).
    """
    if managed_identity.client_id:
        logger.info(f"Using user-assigned managed identity: {managed_identity.client_id}")
        return DefaultAzureCredential(managed_identity_client_id=managed_identity.client_id)

    logger.info("Using DefaultAzureCredential without a managed identity client ID")
    return DefaultAzureCredential()


class TokenProvider:
    """
    Fetches access tokens from an injected async credential.

    Tokens are not cached here; every call asks the credential, which may
    keep its own cache.
    """

    def __init__(self, credential: AsyncTokenCredential) -> None:
        self._credential = credential

    async def get_access_token(self, scope_or_resource: str) -> str:
        """
        Get an access token for a scope or resource identifier.

        Args:
            scope_or_resource: OAuth2 scope, or App ID URI to which
                ``/.default`` is appended

        Returns:
            The raw access token string

        Raises:
            InvalidArgument: If scope_or_resource is blank
            CredentialFailure: If the credential could not issue a token
        """
        scope = normalize_scope(scope_or_resource)

        try:
            token = await self._credential.get_token(scope)
        except AzureError as e:
            logger.error(f"Failed to acquire token for scope {scope}: {e}")
            raise CredentialFailure(f"Failed to acquire token for scope {scope}: {e}") from e

        logger.debug(f"Acquired token for scope {scope}")
        return token.token

    async def close(self) -> None:
        """Close the underlying credential."""
        await self._credential.close()
