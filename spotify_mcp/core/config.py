"""
Application configuration models and helpers.

Centralizes settings management so the MCP tool server, the authorization
HTTP app and the operator scripts share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


_DEFAULT_SCOPES = (
    "user-read-private",
    "user-read-email",
    "user-read-playback-state",
    "user-modify-playback-state",
    "user-read-currently-playing",
    "user-read-recently-played",
    "user-library-read",
    "user-library-modify",
    "playlist-read-private",
    "playlist-modify-private",
    "playlist-modify-public",
)


class SpotifySettings(BaseSettings):
    """Application identity registered with the Spotify developer dashboard.

    Identity is optional here because it may also live in the persisted
    credentials document; the credential store decides whether any usable
    identity exists.
    """

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    client_id: Optional[str] = Field(None, validation_alias="SPOTIFY_CLIENT_ID")
    client_secret: Optional[str] = Field(
        None, validation_alias="SPOTIFY_CLIENT_SECRET"
    )
    redirect_uri: str = Field(
        "http://127.0.0.1:8888/api/auth/spotify/callback",
        validation_alias="SPOTIFY_REDIRECT_URI",
    )
    scopes: str = Field(
        " ".join(_DEFAULT_SCOPES),
        validation_alias="SPOTIFY_SCOPES",
        description="Space or comma separated list of OAuth scopes.",
    )

    @property
    def scope_list(self) -> tuple[str, ...]:
        """Support providing scopes as a comma or space separated string."""
        return tuple(
            scope for scope in self.scopes.replace(",", " ").split() if scope
        )


class CredentialSettings(BaseSettings):
    """Where and how the OAuth credential record is kept."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    path: Path = Field(
        Path("spotify-config.json"), validation_alias="SPOTIFY_CREDENTIALS_FILE"
    )
    refresh_margin_seconds: int = Field(
        30,
        validation_alias="SPOTIFY_REFRESH_MARGIN_SECONDS",
        description="Treat access tokens as expired this long before expiresAt.",
        ge=0,
    )
    http_timeout_seconds: float = Field(10.0, validation_alias="SPOTIFY_HTTP_TIMEOUT")


class OAuthSettings(BaseSettings):
    """OAuth flow configuration."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    state_ttl_seconds: int = Field(900, validation_alias="SPOTIFY_OAUTH_STATE_TTL")
    show_dialog: bool = Field(False, validation_alias="SPOTIFY_SHOW_DIALOG")


class AppSettings(BaseSettings):
    """Root settings object shared by every entrypoint."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    host: str = Field("127.0.0.1", validation_alias="APP_HOST")
    port: int = Field(8888, validation_alias="APP_PORT")
    spotify: SpotifySettings = Field(default_factory=SpotifySettings)
    credentials: CredentialSettings = Field(default_factory=CredentialSettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "CredentialSettings",
    "OAuthSettings",
    "SpotifySettings",
    "get_settings",
]
