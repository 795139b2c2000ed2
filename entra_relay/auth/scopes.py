"""
Scope helpers for Entra ID token requests.
"""

from entra_relay.config import DownstreamConfig
from entra_relay.errors import InvalidArgument

DEFAULT_SUFFIX = "/.default"


def normalize_scope(value: str) -> str:
    """
    Turn a scope or resource identifier into a v2 endpoint scope.

    Values without a ``/`` are taken to be scopes already and returned as
    they are. Anything else is a resource (App ID URI) and gets
    ``/.default`` appended, unless it already ends with it in any case.

    Raises:
        InvalidArgument: If the value is empty or whitespace
    """
    if not value or not value.strip():
        raise InvalidArgument("Scope/Resource must be provided")

    if "/" not in value:
        return value

    if value.lower().endswith(DEFAULT_SUFFIX):
        return value

    return value + DEFAULT_SUFFIX


def resolve_downstream_scope(downstream: DownstreamConfig) -> str:
    """
    Pick the scope to request for the downstream API.

    ``scope`` wins over ``resource_id``; whichever is used goes through
    normalize_scope. Having neither configured is an error rather than a
    bare ``/.default`` request.
    """
    if downstream.scope:
        return normalize_scope(downstream.scope)
    if downstream.resource_id:
        return normalize_scope(downstream.resource_id)
    raise InvalidArgument("Neither Downstream:Scope nor Downstream:ResourceId is configured")
