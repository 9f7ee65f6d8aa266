"""
One-time exchange of a user-approved authorization code for the first tokens.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable

from spotify_mcp.clients.spotify_auth import SpotifyOAuthClient
from spotify_mcp.core.errors import ConfigMissingError
from spotify_mcp.models.credentials import CredentialRecord
from spotify_mcp.services.credential_manager import CredentialStore

logger = logging.getLogger(__name__)


class AuthorizationBootstrapper:
    """Seeds the credential store from an authorization code grant."""

    def __init__(
        self,
        store: CredentialStore,
        oauth_client: SpotifyOAuthClient,
        *,
        scopes: Iterable[str] = (),
        show_dialog: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._oauth = oauth_client
        self._scopes = tuple(scopes)
        self._show_dialog = show_dialog
        self._clock = clock

    def authorization_url(self, state: str) -> str:
        """Return the consent URL the user must visit to approve access."""
        record = self._load_identity()
        return self._oauth.build_authorization_url(
            client_id=record.client_id,  # type: ignore[arg-type]
            redirect_uri=record.redirect_uri,  # type: ignore[arg-type]
            state=state,
            scopes=self._scopes,
            show_dialog=self._show_dialog,
        )

    async def bootstrap(self, code: str) -> CredentialRecord:
        """Exchange ``code`` and replace the stored record with the new tokens.

        Nothing is written unless the exchange fully succeeds.
        """
        identity = self._load_identity()
        issued_at = int(self._clock() * 1000)
        grant = await self._oauth.exchange_authorization_code(
            code,
            client_id=identity.client_id,  # type: ignore[arg-type]
            client_secret=identity.client_secret,  # type: ignore[arg-type]
            redirect_uri=identity.redirect_uri,  # type: ignore[arg-type]
        )

        record = CredentialRecord(
            client_id=identity.client_id,
            client_secret=identity.client_secret,
            redirect_uri=identity.redirect_uri,
            access_token=grant.access_token,
            refresh_token=grant.refresh_token,
            expires_at=grant.expires_at(issued_at),
        )
        self._store.save(record)
        logger.info("Stored Spotify tokens from authorization code exchange")
        return record

    def _load_identity(self) -> CredentialRecord:
        record = self._store.load()
        if not record.redirect_uri:
            raise ConfigMissingError(
                "No redirect URI configured. Set SPOTIFY_REDIRECT_URI or add "
                "redirectUri to the credentials file."
            )
        return record


__all__ = ["AuthorizationBootstrapper"]
