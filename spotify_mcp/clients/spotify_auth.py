"""
Spotify OAuth utilities.

These helpers manage the authorization-code exchange and the token refresh
lifecycle against the Spotify accounts service.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import json
import logging
from hashlib import sha256
from typing import Any, Dict, Iterable, Optional
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from spotify_mcp.core.errors import (
    AuthorizationFailedError,
    NetworkError,
    RefreshRejectedError,
)
from spotify_mcp.models.credentials import TokenGrant

logger = logging.getLogger(__name__)


class OAuthStateEncoder:
    """Encode and decode OAuth state values to guard against tampering."""

    def __init__(self, secret_key: str) -> None:
        self._secret_key = secret_key.encode("utf-8")

    def encode(self, payload: Dict[str, Any]) -> str:
        serialized = json.dumps(payload, separators=(",", ":"), sort_keys=True)
        signature = hmac.new(self._secret_key, serialized.encode("utf-8"), sha256).digest()
        return base64.urlsafe_b64encode(signature + serialized.encode("utf-8")).decode("utf-8")

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            decoded = base64.urlsafe_b64decode(token.encode("utf-8"))
        except (binascii.Error, ValueError) as exc:
            raise AuthorizationFailedError("Malformed OAuth state.") from exc
        signature, serialized = decoded[:32], decoded[32:]
        expected_signature = hmac.new(self._secret_key, serialized, sha256).digest()
        if not hmac.compare_digest(signature, expected_signature):
            raise AuthorizationFailedError("Invalid OAuth state signature.")
        return json.loads(serialized)


def _is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        error = body.get("error")
        description = body.get("error_description")
        if description:
            return f"{error}: {description}"
        if error:
            return str(error)
    return response.text


class SpotifyOAuthClient:
    """Build Spotify authorization URLs and talk to the token endpoint."""

    AUTH_BASE_URL = "https://accounts.spotify.com/authorize"
    TOKEN_URL = "https://accounts.spotify.com/api/token"

    def __init__(
        self,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport

    def build_authorization_url(
        self,
        *,
        client_id: str,
        redirect_uri: str,
        state: str,
        scopes: Iterable[str] = (),
        show_dialog: bool = False,
    ) -> str:
        """Construct the Spotify consent URL."""
        params = {
            "client_id": client_id,
            "response_type": "code",
            "redirect_uri": redirect_uri,
            "scope": " ".join(scopes),
            "state": state,
        }
        if show_dialog:
            params["show_dialog"] = "true"
        return f"{self.AUTH_BASE_URL}?{urlencode(params)}"

    async def exchange_authorization_code(
        self,
        code: str,
        *,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
    ) -> TokenGrant:
        """Exchange an authorization code for the first token pair.

        ``redirect_uri`` must match the one used to obtain ``code``.
        """
        payload = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
            "client_id": client_id,
            "client_secret": client_secret,
        }
        response = await self._post(payload)

        if response.status_code != httpx.codes.OK:
            raise AuthorizationFailedError(
                f"Authorization code exchange rejected: {_error_detail(response)}"
            )

        try:
            grant = TokenGrant.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise AuthorizationFailedError(
                "Incomplete token payload returned from Spotify."
            ) from exc
        if not grant.refresh_token:
            raise AuthorizationFailedError(
                "Spotify did not issue a refresh token for this authorization code."
            )
        return grant

    async def refresh_token(
        self,
        refresh_token: str,
        *,
        client_id: str,
        client_secret: str,
    ) -> TokenGrant:
        """Refresh the access token using a stored refresh token.

        The returned grant carries ``refresh_token`` only when Spotify rotated it.
        """
        payload = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": client_id,
            "client_secret": client_secret,
        }
        response = await self._post(payload)

        if response.status_code != httpx.codes.OK:
            detail = _error_detail(response)
            if _is_retryable_status(response.status_code):
                raise NetworkError(
                    f"Token endpoint unavailable (HTTP {response.status_code}): {detail}"
                )
            raise RefreshRejectedError(f"Refresh token rejected: {detail}")

        try:
            return TokenGrant.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise NetworkError("Incomplete refresh payload returned from Spotify.") from exc

    async def _post(self, payload: Dict[str, str]) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                return await client.post(self.TOKEN_URL, data=payload)
        except httpx.TransportError as exc:
            logger.warning("Token endpoint request failed: %s", exc)
            raise NetworkError(f"Could not reach the Spotify token endpoint: {exc}") from exc


__all__ = [
    "OAuthStateEncoder",
    "SpotifyOAuthClient",
]
