"""
Caller identity taken from a validated bearer token.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class AuthenticatedUser(BaseModel):
    """
    Represents the principal behind a validated Entra ID token.

    For the managed identity calling the downstream API this is a service
    principal, so most user-facing claims are absent.
    """

    subject: str = Field(..., description="Unique identifier (sub claim)")
    name: Optional[str] = Field(None, description="Display name")
    tenant_id: Optional[str] = Field(None, description="Azure AD tenant ID")
    object_id: Optional[str] = Field(None, description="Object ID in Azure AD")
    app_id: Optional[str] = Field(None, description="Application ID that requested the token")

    scopes: List[str] = Field(default_factory=list, description="Delegated scopes (scp)")
    roles: List[str] = Field(default_factory=list, description="Application roles")

    expires_at: Optional[datetime] = Field(None, description="Token expiration time")

    @classmethod
    def from_token_payload(cls, payload: Dict[str, Any]) -> "AuthenticatedUser":
        """
        Create AuthenticatedUser from JWT token payload.
        """
        # scp is a space-separated string in Entra ID tokens
        scp = payload.get("scp", [])
        scopes = scp.split() if isinstance(scp, str) else list(scp)

        expires_at = None
        if "exp" in payload:
            expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)

        return cls(
            subject=payload.get("sub", payload.get("oid", "unknown")),
            name=payload.get("name"),
            tenant_id=payload.get("tid"),
            object_id=payload.get("oid"),
            app_id=payload.get("appid") or payload.get("azp"),
            scopes=scopes,
            roles=payload.get("roles", []),
            expires_at=expires_at,
        )

    @property
    def is_application(self) -> bool:
        """True for app-only tokens, such as those issued to a managed identity."""
        return not self.scopes
