"""
Exception types raised by the token relay.
"""

from typing import Optional


class RelayError(Exception):
    """Base class for relay failures."""
    pass


class InvalidArgument(RelayError, ValueError):
    """Raised when a scope or resource identifier is missing or blank."""
    pass


class CredentialFailure(RelayError):
    """Raised when the identity provider could not issue an access token."""
    pass


class UpstreamError(RelayError):
    """
    Raised when the downstream API call did not succeed.

    ``status_code`` holds the downstream HTTP status, or None when no
    response was received at all.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
