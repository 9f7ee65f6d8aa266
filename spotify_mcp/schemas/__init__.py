"""Public schema exports."""

from .auth import AuthorizationResult, AuthorizationStart, OAuthCallbackPayload

__all__ = [
    "AuthorizationResult",
    "AuthorizationStart",
    "OAuthCallbackPayload",
]
