"""
Failure taxonomy for the credential lifecycle.

Every kind is distinct so callers can pick a remedy. Only ``NetworkError``
is worth retrying; ``NotBootstrappedError`` and ``AuthExpiredError`` need the
user to authorize again.
"""

from __future__ import annotations


class CredentialError(Exception):
    """Base class for credential lifecycle failures."""


class ConfigMissingError(CredentialError):
    """Raised when no client identity is configured anywhere."""


class NotBootstrappedError(CredentialError):
    """Raised when identity exists but no token pair has been obtained yet."""


class RefreshRejectedError(CredentialError):
    """Raised when the token endpoint rejects a refresh token."""


class AuthExpiredError(CredentialError):
    """Raised when the session can only be recovered by re-authorizing."""


class NetworkError(CredentialError):
    """Raised on transient token endpoint failures; safe to retry."""


class PersistenceError(CredentialError):
    """Raised when the credentials document cannot be read or written."""


class AuthorizationFailedError(CredentialError):
    """Raised when the authorization code exchange is rejected."""


__all__ = [
    "AuthExpiredError",
    "AuthorizationFailedError",
    "ConfigMissingError",
    "CredentialError",
    "NetworkError",
    "NotBootstrappedError",
    "PersistenceError",
    "RefreshRejectedError",
]
