"""Schemas related to OAuth flows."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class OAuthCallbackPayload(BaseModel):
    """Payload sent to complete the OAuth callback exchange."""

    code: str = Field(..., description="Authorization code returned by Spotify.")
    state: str = Field(..., description="Opaque state token issued when starting OAuth.")


class AuthorizationStart(BaseModel):
    """Where to send the user to approve access."""

    authorization_url: str
    state: str


class AuthorizationResult(BaseModel):
    """Outcome of a completed authorization code exchange."""

    status: str = "connected"
    expires_at: Optional[int] = Field(
        None, description="Access token expiry in epoch milliseconds."
    )


__all__ = ["AuthorizationResult", "AuthorizationStart", "OAuthCallbackPayload"]
