"""
Authentication dependencies for the downstream service.
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from entra_relay.auth.jwt_validator import JWTValidator
from entra_relay.models.user import AuthenticatedUser

logger = logging.getLogger(__name__)

# HTTP Bearer token extractor
security = HTTPBearer(
    scheme_name="Bearer",
    description="Access token issued by Entra ID (Azure AD)",
    auto_error=False,
)


def get_jwt_validator(request: Request) -> Optional[JWTValidator]:
    """
    Validator attached to the app, or None when validation is switched off.
    """
    return getattr(request.app.state, "jwt_validator", None)


async def require_bearer(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    validator: Optional[JWTValidator] = Depends(get_jwt_validator),
) -> Optional[AuthenticatedUser]:
    """
    Dependency that validates the bearer token when an authority is configured.

    Returns None without looking at the request when no validator is
    configured, i.e. the route is anonymous.

    Raises:
        HTTPException: If validation is on and the token is missing or invalid
    """
    if validator is None:
        return None

    if not credentials:
        logger.warning("No authorization credentials provided")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = await validator.validate_token(credentials.credentials)
    except ValueError as e:
        logger.warning(f"Token validation failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid authentication credentials: {e}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = AuthenticatedUser.from_token_payload(payload)
    logger.info(f"Caller authenticated: {user.app_id or user.subject}")
    return user
