"""Expose constructed client wrappers."""

from .credential_store import FileCredentialStore
from .spotify_api import SpotifyApiClient, SpotifyApiError
from .spotify_auth import OAuthStateEncoder, SpotifyOAuthClient

__all__ = [
    "FileCredentialStore",
    "OAuthStateEncoder",
    "SpotifyApiClient",
    "SpotifyApiError",
    "SpotifyOAuthClient",
]
