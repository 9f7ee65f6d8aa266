"""
FastAPI routes hosting the Spotify authorization redirect target.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from http import HTTPStatus
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import RedirectResponse

from spotify_mcp.core.errors import (
    AuthExpiredError,
    AuthorizationFailedError,
    ConfigMissingError,
    CredentialError,
    NetworkError,
    NotBootstrappedError,
    PersistenceError,
)
from spotify_mcp.dependencies import (
    get_app_settings,
    get_authorization_bootstrapper,
    get_credential_manager,
    get_oauth_state_encoder,
)
from spotify_mcp.models.credentials import CredentialStatus
from spotify_mcp.schemas import (
    AuthorizationResult,
    AuthorizationStart,
    OAuthCallbackPayload,
)

router = APIRouter()
logger = logging.getLogger(__name__)


_ERROR_STATUS: dict[type[CredentialError], HTTPStatus] = {
    AuthorizationFailedError: HTTPStatus.BAD_REQUEST,
    NotBootstrappedError: HTTPStatus.UNAUTHORIZED,
    AuthExpiredError: HTTPStatus.UNAUTHORIZED,
    NetworkError: HTTPStatus.BAD_GATEWAY,
    ConfigMissingError: HTTPStatus.INTERNAL_SERVER_ERROR,
    PersistenceError: HTTPStatus.INTERNAL_SERVER_ERROR,
}


def status_for_error(exc: CredentialError) -> HTTPStatus:
    """Map a credential failure to the HTTP status reported to the browser."""
    for error_type, status_code in _ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status_code
    return HTTPStatus.INTERNAL_SERVER_ERROR


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get("/auth/spotify/authorize", status_code=HTTPStatus.OK)
async def start_spotify_oauth_flow(
    request: Request,
    bootstrapper: Annotated[Any, Depends(get_authorization_bootstrapper)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    redirect: bool = Query(
        default=False,
        description="When true, respond with a redirect to the Spotify consent screen.",
    ),
) -> Any:
    """
    Kick off the OAuth flow by generating a state token and authorization URL.
    """
    state = state_encoder.encode(
        {
            "nonce": uuid.uuid4().hex,
            "issued_at": datetime.now(timezone.utc).isoformat(),
        }
    )
    authorization_url = bootstrapper.authorization_url(state)

    accept_header = request.headers.get("accept", "")
    wants_html = "text/html" in accept_header.lower()
    if redirect or wants_html:
        return RedirectResponse(url=authorization_url, status_code=HTTPStatus.TEMPORARY_REDIRECT)

    return AuthorizationStart(authorization_url=authorization_url, state=state)


@router.post("/auth/spotify/callback", status_code=HTTPStatus.OK)
async def handle_spotify_oauth_callback(
    payload: OAuthCallbackPayload,
    bootstrapper: Annotated[Any, Depends(get_authorization_bootstrapper)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    settings: Annotated[Any, Depends(get_app_settings)],
) -> AuthorizationResult:
    """Complete the OAuth exchange and store the first token pair."""
    try:
        state_data = state_encoder.decode(payload.state)
    except AuthorizationFailedError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc)) from exc

    issued_at_raw = state_data.get("issued_at")
    if not issued_at_raw:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Missing issued_at in state token.",
        )

    try:
        issued_at = datetime.fromisoformat(issued_at_raw)
    except ValueError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Invalid issued_at in state token.",
        ) from exc

    if issued_at.tzinfo is None:
        issued_at = issued_at.replace(tzinfo=timezone.utc)

    now = datetime.now(timezone.utc)
    if now - issued_at > timedelta(seconds=settings.oauth.state_ttl_seconds):
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST, detail="OAuth state token has expired."
        )

    try:
        record = await bootstrapper.bootstrap(payload.code)
    except CredentialError as exc:
        logger.warning("Authorization code exchange failed: %s", exc)
        raise HTTPException(status_code=status_for_error(exc), detail=str(exc)) from exc

    return AuthorizationResult(status="connected", expires_at=record.expires_at)


@router.get("/auth/spotify/callback", status_code=HTTPStatus.OK)
async def handle_spotify_oauth_callback_get(
    bootstrapper: Annotated[Any, Depends(get_authorization_bootstrapper)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    settings: Annotated[Any, Depends(get_app_settings)],
    state: str = Query(..., description="OAuth state token."),
    code: str | None = Query(
        default=None, description="Authorization code returned by Spotify."
    ),
    error: str | None = Query(
        default=None, description="Error reported by Spotify when access is denied."
    ),
) -> AuthorizationResult:
    """Browser redirect target; Spotify appends `code` or `error` and `state`."""
    if error or not code:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail=f"Spotify authorization was not granted: {error or 'no code supplied'}",
        )
    payload = OAuthCallbackPayload(state=state, code=code)
    return await handle_spotify_oauth_callback(
        payload=payload,
        bootstrapper=bootstrapper,
        state_encoder=state_encoder,
        settings=settings,
    )


@router.get("/auth/spotify/status", response_model=CredentialStatus)
async def spotify_credential_status(
    manager: Annotated[Any, Depends(get_credential_manager)],
    settings: Annotated[Any, Depends(get_app_settings)],
) -> CredentialStatus:
    """Report whether usable Spotify credentials are stored."""
    try:
        status = manager.status()
    except PersistenceError as exc:
        raise HTTPException(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc
    status.credentials_file = str(settings.credentials.path)
    return status


__all__ = ["router", "status_for_error"]
