"""Caller and downstream services relaying Entra ID managed-identity tokens."""

__version__ = "0.1.0"
