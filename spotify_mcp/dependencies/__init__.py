"""Expose dependency helpers for FastAPI routers and the MCP server."""

from .clients import (
    get_app_settings,
    get_authorization_bootstrapper,
    get_credential_manager,
    get_credential_store,
    get_oauth_state_encoder,
    get_spotify_api_client,
    get_spotify_oauth_client,
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
