"""
Factory functions to provide shared clients and services as FastAPI dependencies.

The MCP tool server and the operator scripts reuse the same factories so that
every entrypoint in a process shares one credential manager.
"""

from functools import lru_cache

from spotify_mcp.clients import (
    FileCredentialStore,
    OAuthStateEncoder,
    SpotifyApiClient,
    SpotifyOAuthClient,
)
from spotify_mcp.core.config import AppSettings, get_settings
from spotify_mcp.services import AuthorizationBootstrapper, CredentialManager


@lru_cache()
def _settings() -> AppSettings:
    """Internal helper to cache settings for client factories."""
    return get_settings()


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning application settings."""
    return _settings()


@lru_cache()
def get_credential_store() -> FileCredentialStore:
    """Provide the JSON credential store seeded with configured identity."""
    settings = _settings()
    return FileCredentialStore(
        settings.credentials.path,
        client_id=settings.spotify.client_id,
        client_secret=settings.spotify.client_secret,
        redirect_uri=settings.spotify.redirect_uri,
    )


@lru_cache()
def get_spotify_oauth_client() -> SpotifyOAuthClient:
    """Create a singleton Spotify OAuth client."""
    settings = _settings()
    return SpotifyOAuthClient(timeout=settings.credentials.http_timeout_seconds)


@lru_cache()
def get_credential_manager() -> CredentialManager:
    """Provide the process-wide credential manager."""
    settings = _settings()
    return CredentialManager(
        store=get_credential_store(),
        refresher=get_spotify_oauth_client(),
        refresh_margin_seconds=settings.credentials.refresh_margin_seconds,
    )


@lru_cache()
def get_authorization_bootstrapper() -> AuthorizationBootstrapper:
    """Provide the authorization code bootstrapper."""
    settings = _settings()
    return AuthorizationBootstrapper(
        store=get_credential_store(),
        oauth_client=get_spotify_oauth_client(),
        scopes=settings.spotify.scope_list,
        show_dialog=settings.oauth.show_dialog,
    )


@lru_cache()
def get_oauth_state_encoder() -> OAuthStateEncoder:
    """Provide an OAuth state encoder derived from the client secret."""
    record = get_credential_store().load()
    return OAuthStateEncoder(secret_key=record.client_secret or "")


@lru_cache()
def get_spotify_api_client() -> SpotifyApiClient:
    """Provide the Spotify Web API client."""
    settings = _settings()
    return SpotifyApiClient(
        get_credential_manager(),
        timeout=settings.credentials.http_timeout_seconds,
    )


__all__ = [
    "get_app_settings",
    "get_authorization_bootstrapper",
    "get_credential_manager",
    "get_credential_store",
    "get_oauth_state_encoder",
    "get_spotify_api_client",
    "get_spotify_oauth_client",
]
