"""Thin async client for the Spotify Web API backed by managed credentials."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from spotify_mcp.services.credential_manager import CredentialManager
from spotify_mcp.utils.http import RetryConfig, call_with_retry

logger = logging.getLogger(__name__)


class SpotifyApiError(Exception):
    """Raised when a Spotify Web API call fails.

    ``status_code`` is None when no HTTP response was received or the body
    could not be decoded.
    """

    def __init__(self, status_code: Optional[int], message: str) -> None:
        if status_code is None:
            super().__init__(f"Spotify API error: {message}")
        else:
            super().__init__(f"Spotify API error {status_code}: {message}")
        self.status_code = status_code


class SpotifyApiClient:
    """Issue authenticated requests against the Spotify Web API."""

    _BASE_URL = "https://api.spotify.com/v1"

    def __init__(
        self,
        credentials: CredentialManager,
        *,
        timeout: float = 10.0,
        retry_config: RetryConfig | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._credentials = credentials
        self._timeout = timeout
        self._retry = retry_config or RetryConfig()
        self._transport = transport

    async def get(self, path: str, *, params: Dict[str, Any] | None = None) -> Any:
        """GET ``path`` and return the decoded JSON body, or None when empty."""
        return await self._request("GET", path, params=params)

    async def put(self, path: str, *, params: Dict[str, Any] | None = None) -> Any:
        return await self._request("PUT", path, params=params)

    async def delete(self, path: str, *, params: Dict[str, Any] | None = None) -> Any:
        return await self._request("DELETE", path, params=params)

    async def _request(
        self, method: str, path: str, *, params: Dict[str, Any] | None = None
    ) -> Any:
        token = await call_with_retry(
            self._credentials.get_valid_credential, retry_config=self._retry
        )
        try:
            async with httpx.AsyncClient(
                base_url=self._BASE_URL, timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.request(
                    method, path, params=params, headers=_bearer(token)
                )
                if response.status_code == httpx.codes.UNAUTHORIZED:
                    logger.info("Spotify rejected the access token; refreshing once")
                    token = await call_with_retry(
                        self._credentials.force_refresh,
                        rejected_token=token,
                        retry_config=self._retry,
                    )
                    response = await client.request(
                        method, path, params=params, headers=_bearer(token)
                    )
        except httpx.TransportError as exc:
            logger.warning("Spotify Web API request %s %s failed: %s", method, path, exc)
            raise SpotifyApiError(
                None, f"Could not reach the Spotify Web API: {exc}"
            ) from exc

        if response.is_error:
            raise SpotifyApiError(response.status_code, _error_message(response))
        if response.status_code == httpx.codes.NO_CONTENT or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise SpotifyApiError(
                None, f"Unreadable response body from {method} {path}"
            ) from exc

    async def get_available_devices(self) -> List[Dict[str, Any]]:
        payload = await self.get("/me/player/devices")
        return (payload or {}).get("devices", [])

    async def get_currently_playing(self) -> Optional[Dict[str, Any]]:
        return await self.get("/me/player/currently-playing")

    async def get_album(self, album_id: str) -> Dict[str, Any]:
        return await self.get(f"/albums/{album_id}")

    async def get_albums(self, album_ids: List[str]) -> List[Optional[Dict[str, Any]]]:
        payload = await self.get("/albums", params={"ids": ",".join(album_ids)})
        return (payload or {}).get("albums", [])

    async def get_album_tracks(
        self, album_id: str, *, limit: int = 20, offset: int = 0
    ) -> Dict[str, Any]:
        return await self.get(
            f"/albums/{album_id}/tracks", params={"limit": limit, "offset": offset}
        )

    async def get_new_releases(self, *, limit: int = 20, offset: int = 0) -> Dict[str, Any]:
        """Return the ``albums`` page of featured new releases."""
        payload = await self.get(
            "/browse/new-releases", params={"limit": limit, "offset": offset}
        )
        return (payload or {}).get("albums", {})

    async def get_saved_albums(self, *, limit: int = 20, offset: int = 0) -> Dict[str, Any]:
        return await self.get("/me/albums", params={"limit": limit, "offset": offset})

    async def save_albums(self, album_ids: List[str]) -> None:
        await self.put("/me/albums", params={"ids": ",".join(album_ids)})

    async def remove_albums(self, album_ids: List[str]) -> None:
        await self.delete("/me/albums", params={"ids": ",".join(album_ids)})

    async def check_saved_albums(self, album_ids: List[str]) -> List[bool]:
        payload = await self.get("/me/albums/contains", params={"ids": ",".join(album_ids)})
        return list(payload or [])


def _bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return str(error.get("message") or error.get("status"))
    if error:
        return str(error)
    return response.text


__all__ = ["SpotifyApiClient", "SpotifyApiError"]
