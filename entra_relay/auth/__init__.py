"""Authentication package initialization."""

from .dependencies import get_jwt_validator, require_bearer
from .jwt_validator import JWTValidator
from .scopes import normalize_scope, resolve_downstream_scope
from .token_provider import TokenProvider, build_credential

__all__ = [
    "JWTValidator",
    "TokenProvider",
    "build_credential",
    "get_jwt_validator",
    "normalize_scope",
    "require_bearer",
    "resolve_downstream_scope",
]
