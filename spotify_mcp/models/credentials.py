"""
Domain models for OAuth credential persistence.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CredentialRecord(BaseModel):
    """The persisted identity and token state for the Spotify application.

    ``expires_at`` is epoch milliseconds. A record without it is treated as
    expired.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    client_id: Optional[str] = Field(None, alias="clientId")
    client_secret: Optional[str] = Field(None, alias="clientSecret")
    redirect_uri: Optional[str] = Field(None, alias="redirectUri")
    access_token: Optional[str] = Field(None, alias="accessToken")
    refresh_token: Optional[str] = Field(None, alias="refreshToken")
    expires_at: Optional[int] = Field(None, alias="expiresAt")

    @property
    def has_identity(self) -> bool:
        return bool(self.client_id and self.client_secret)

    @property
    def is_bootstrapped(self) -> bool:
        return bool(self.access_token or self.refresh_token)

    def is_expired(self, now_ms: int, margin_ms: int = 0) -> bool:
        """Return True when the access token must not be used at ``now_ms``."""
        if not self.access_token or self.expires_at is None:
            return True
        return now_ms >= self.expires_at - margin_ms

    def to_document(self) -> dict:
        """Serialize to the camelCase document written to disk."""
        return self.model_dump(by_alias=True, exclude_none=True)


class TokenGrant(BaseModel):
    """A successful response from the Spotify token endpoint."""

    access_token: str
    expires_in: int = Field(3600, description="Lifetime of access_token in seconds.")
    refresh_token: Optional[str] = None
    scope: Optional[str] = None
    token_type: str = "Bearer"

    def expires_at(self, issued_at_ms: int) -> int:
        return issued_at_ms + self.expires_in * 1000


class CredentialStatus(BaseModel):
    """Non-sensitive snapshot of the credential state."""

    configured: bool
    bootstrapped: bool
    expired: bool
    expires_at: Optional[int] = None
    credentials_file: Optional[str] = None


__all__ = ["CredentialRecord", "CredentialStatus", "TokenGrant"]
