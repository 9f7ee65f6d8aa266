"""
Hands out currently-valid Spotify access tokens, refreshing them when stale.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional, Protocol

from spotify_mcp.core.errors import (
    AuthExpiredError,
    ConfigMissingError,
    NotBootstrappedError,
    RefreshRejectedError,
)
from spotify_mcp.models.credentials import CredentialRecord, CredentialStatus, TokenGrant

logger = logging.getLogger(__name__)


class CredentialStore(Protocol):
    def load(self) -> CredentialRecord: ...

    def save(self, record: CredentialRecord) -> None: ...


class TokenRefresher(Protocol):
    async def refresh_token(
        self, refresh_token: str, *, client_id: str, client_secret: str
    ) -> TokenGrant: ...


class CredentialManager:
    """The single entry point for obtaining a usable bearer token.

    At most one refresh is in flight at a time: callers that find the record
    expired while a refresh is pending await that same refresh. The pending
    refresh is shielded, so a caller that gives up waiting does not cancel the
    network call or the write that follows it.
    """

    def __init__(
        self,
        store: CredentialStore,
        refresher: TokenRefresher,
        *,
        refresh_margin_seconds: int = 30,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._refresher = refresher
        self._margin_ms = refresh_margin_seconds * 1000
        self._clock = clock
        self._pending: Optional[asyncio.Task[str]] = None

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def get_valid_credential(self) -> str:
        """Return an access token that is valid right now."""
        record = self._store.load()
        if not record.is_bootstrapped:
            raise NotBootstrappedError(
                "No Spotify tokens stored yet; complete the authorization flow first."
            )

        if not record.is_expired(self._now_ms(), self._margin_ms):
            return record.access_token  # type: ignore[return-value]

        return await self._join_refresh(record)

    async def force_refresh(self, *, rejected_token: Optional[str] = None) -> str:
        """Refresh regardless of ``expiresAt``.

        When ``rejected_token`` is no longer the stored access token another
        caller already replaced it, and the stored token is returned as is.
        """
        record = self._store.load()
        if not record.is_bootstrapped:
            raise NotBootstrappedError(
                "No Spotify tokens stored yet; complete the authorization flow first."
            )
        if (
            rejected_token is not None
            and record.access_token
            and record.access_token != rejected_token
            and not record.is_expired(self._now_ms(), self._margin_ms)
        ):
            return record.access_token
        return await self._join_refresh(record)

    def status(self) -> CredentialStatus:
        """Describe the stored credential without touching the network."""
        try:
            record = self._store.load()
        except ConfigMissingError:
            return CredentialStatus(configured=False, bootstrapped=False, expired=True)
        return CredentialStatus(
            configured=True,
            bootstrapped=record.is_bootstrapped,
            expired=record.is_expired(self._now_ms(), self._margin_ms),
            expires_at=record.expires_at,
        )

    async def _join_refresh(self, record: CredentialRecord) -> str:
        if self._pending is None:
            task = asyncio.ensure_future(self._refresh(record))
            task.add_done_callback(self._clear_pending)
            self._pending = task
        return await asyncio.shield(self._pending)

    def _clear_pending(self, task: "asyncio.Task[str]") -> None:
        if self._pending is task:
            self._pending = None

    async def _refresh(self, record: CredentialRecord) -> str:
        if not record.refresh_token:
            raise AuthExpiredError(
                "Access token expired and no refresh token is stored; re-authorize."
            )

        logger.info("Refreshing Spotify access token")
        refreshed_at = self._now_ms()
        try:
            grant = await self._refresher.refresh_token(
                record.refresh_token,
                client_id=record.client_id,  # type: ignore[arg-type]
                client_secret=record.client_secret,  # type: ignore[arg-type]
            )
        except RefreshRejectedError as exc:
            logger.warning("Spotify rejected the stored refresh token: %s", exc)
            raise AuthExpiredError(
                "Spotify authorization has expired or was revoked; re-authorize."
            ) from exc

        record.access_token = grant.access_token
        record.expires_at = grant.expires_at(refreshed_at)
        if grant.refresh_token:
            record.refresh_token = grant.refresh_token
        self._store.save(record)
        logger.info("Spotify access token refreshed; valid for %ss", grant.expires_in)
        return grant.access_token


__all__ = ["CredentialManager", "CredentialStore", "TokenRefresher"]
