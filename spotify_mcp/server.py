"""
Spotify MCP server.

Tools call the Spotify Web API through ``SpotifyApiClient``, which obtains a
currently-valid bearer from the shared credential manager. stdout is reserved
exclusively for the MCP JSON-RPC protocol; logging goes to stderr.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from mcp.server.fastmcp import FastMCP

from spotify_mcp.clients.spotify_api import SpotifyApiError
from spotify_mcp.core.config import get_settings
from spotify_mcp.core.errors import (
    AuthExpiredError,
    CredentialError,
    NotBootstrappedError,
)
from spotify_mcp.core.logging import configure_logging
from spotify_mcp.dependencies import get_credential_manager, get_spotify_api_client

logger = logging.getLogger(__name__)

mcp = FastMCP("spotify-mcp-server")

AUTH_ERROR_MESSAGE = (
    "Spotify is not authorized. Start the authorization server "
    "(spotify-mcp-auth) and open /api/auth/spotify/authorize in a browser."
)

MAX_ALBUM_IDS = 20


def _error_text(action: str, exc: Exception) -> str:
    """Render a failure as the text a tool returns to the model."""
    if isinstance(exc, (NotBootstrappedError, AuthExpiredError)):
        return f"Error {action}: {exc} {AUTH_ERROR_MESSAGE}"
    return f"Error {action}: {exc}"


def _format_duration(ms: int) -> str:
    minutes, seconds = divmod(int(ms) // 1000, 60)
    return f"{minutes}:{seconds:02d}"


def _artist_names(item: Dict[str, Any]) -> str:
    return ", ".join(artist.get("name", "?") for artist in item.get("artists", []))


def _page(limit: Optional[int], offset: Optional[int]) -> Tuple[int, int]:
    """Clamp pagination to what the Web API accepts (limit 1-50)."""
    return min(max(limit or 20, 1), 50), max(offset or 0, 0)


def _album_ids_error(album_ids: List[str]) -> Optional[str]:
    if not album_ids:
        return "Error: No album IDs provided"
    if len(album_ids) > MAX_ALBUM_IDS:
        return f"Error: At most {MAX_ALBUM_IDS} album IDs can be requested at once"
    return None


def _albums(count: int) -> str:
    return f"{count} album" if count == 1 else f"{count} albums"


@mcp.tool()
async def devices() -> str:
    """Get a list of available Spotify devices."""
    try:
        result = await get_spotify_api_client().get_available_devices()
    except (CredentialError, SpotifyApiError) as exc:
        return _error_text("getting devices", exc)

    if not result:
        return "No available devices found."
    lines = "".join(f"\n- {device.get('name')} ({device.get('id')})" for device in result)
    return f"Available devices: {lines}"


@mcp.tool(name="getNowPlaying")
async def get_now_playing() -> str:
    """Get information about the currently playing track on Spotify."""
    try:
        playback = await get_spotify_api_client().get_currently_playing()
    except (CredentialError, SpotifyApiError) as exc:
        return _error_text("getting current track", exc)

    track = (playback or {}).get("item")
    if not track:
        return "Nothing is currently playing on Spotify."
    progress = _format_duration(playback.get("progress_ms") or 0)
    duration = _format_duration(track.get("duration_ms") or 0)
    state = "Playing" if playback.get("is_playing") else "Paused"
    return (
        f"# Currently {state}\n\n"
        f"**Track**: \"{track.get('name')}\"\n"
        f"**Artist**: {_artist_names(track)}\n"
        f"**Album**: {(track.get('album') or {}).get('name')}\n"
        f"**Progress**: {progress} / {duration}\n"
        f"**ID**: {track.get('id')}"
    )


@mcp.tool(name="getAlbum")
async def get_album(album_id: str) -> str:
    """Get detailed information about a specific album by its Spotify ID."""
    try:
        album = await get_spotify_api_client().get_album(album_id)
    except (CredentialError, SpotifyApiError) as exc:
        return _error_text("getting album", exc)

    return (
        "# Album Details\n\n"
        f"**Name**: \"{album.get('name')}\"\n"
        f"**Artists**: {_artist_names(album)}\n"
        f"**Release Date**: {album.get('release_date')}\n"
        f"**Type**: {album.get('album_type')}\n"
        f"**Total Tracks**: {album.get('total_tracks')}\n"
        f"**ID**: {album.get('id')}"
    )


@mcp.tool(name="getMultipleAlbums")
async def get_multiple_albums(album_ids: List[str]) -> str:
    """Get detailed information about multiple albums by their Spotify IDs (max 20)."""
    invalid = _album_ids_error(album_ids)
    if invalid:
        return invalid

    try:
        albums = await get_spotify_api_client().get_albums(album_ids)
    except (CredentialError, SpotifyApiError) as exc:
        return _error_text("getting albums", exc)

    if not albums:
        return "No albums found for the provided IDs"
    lines = []
    for index, album in enumerate(albums, start=1):
        if not album:
            lines.append(f"{index}. [Album not found]")
            continue
        lines.append(
            f"{index}. \"{album.get('name')}\" by {_artist_names(album)} "
            f"({album.get('release_date')}) - {album.get('total_tracks')} tracks "
            f"- ID: {album.get('id')}"
        )
    return "# Multiple Albums\n\n" + "\n".join(lines)


@mcp.tool(name="getAlbumTracks")
async def get_album_tracks(
    album_id: str, limit: Optional[int] = None, offset: Optional[int] = None
) -> str:
    """Get tracks from a specific album with pagination support.

    limit is the maximum number of tracks to return (1-50); offset is the
    index of the first track to return.
    """
    limit, offset = _page(limit, offset)
    try:
        page = await get_spotify_api_client().get_album_tracks(
            album_id, limit=limit, offset=offset
        )
    except (CredentialError, SpotifyApiError) as exc:
        return _error_text("getting album tracks", exc)

    items = (page or {}).get("items", [])
    if not items:
        return "No tracks found in this album"
    lines = [
        f"{offset + index}. \"{track.get('name')}\" by {_artist_names(track)} "
        f"({_format_duration(track.get('duration_ms') or 0)}) - ID: {track.get('id')}"
        for index, track in enumerate(items, start=1)
    ]
    total = page.get("total", len(items))
    return (
        f"# Album Tracks ({offset + 1}-{offset + len(items)} of {total})\n\n"
        + "\n".join(lines)
    )


@mcp.tool(name="getNewReleases")
async def get_new_releases(limit: Optional[int] = None, offset: Optional[int] = None) -> str:
    """Get a list of new album releases featured in Spotify.

    limit is the maximum number of albums to return (1-50).
    """
    limit, offset = _page(limit, offset)
    try:
        page = await get_spotify_api_client().get_new_releases(limit=limit, offset=offset)
    except (CredentialError, SpotifyApiError) as exc:
        return _error_text("getting new releases", exc)

    items = (page or {}).get("items", [])
    if not items:
        return "No new releases found"
    lines = []
    for index, album in enumerate(items, start=1):
        if not album:
            lines.append(f"{index}. [Album not found]")
            continue
        lines.append(
            f"{offset + index}. \"{album.get('name')}\" by {_artist_names(album)} "
            f"({album.get('release_date')}) - ID: {album.get('id')}"
        )
    total = page.get("total", len(items))
    return (
        f"# New Releases ({offset + 1}-{offset + len(items)} of {total})\n\n"
        + "\n".join(lines)
    )


@mcp.tool(name="getUsersSavedAlbums")
async def get_users_saved_albums(
    limit: Optional[int] = None, offset: Optional[int] = None
) -> str:
    """Get albums saved in the user's "Your Music" library."""
    limit, offset = _page(limit, offset)
    try:
        page = await get_spotify_api_client().get_saved_albums(limit=limit, offset=offset)
    except (CredentialError, SpotifyApiError) as exc:
        return _error_text("getting saved albums", exc)

    items = (page or {}).get("items", [])
    if not items:
        return "You don't have any saved albums in your library"
    lines = []
    for index, item in enumerate(items, start=1):
        album = (item or {}).get("album")
        if not album:
            lines.append(f"{index}. [Album not found]")
            continue
        added = (item.get("added_at") or "").split("T", 1)[0]
        lines.append(
            f"{offset + index}. \"{album.get('name')}\" by {_artist_names(album)} "
            f"({album.get('release_date')}) - ID: {album.get('id')} - Added: {added}"
        )
    total = page.get("total", len(items))
    return (
        f"# Your Saved Albums ({offset + 1}-{offset + len(items)} of {total})\n\n"
        + "\n".join(lines)
    )


@mcp.tool(name="saveAlbumsForUser")
async def save_albums_for_user(album_ids: List[str]) -> str:
    """Save albums to the user's "Your Music" library (max 20)."""
    invalid = _album_ids_error(album_ids)
    if invalid:
        return invalid
    try:
        await get_spotify_api_client().save_albums(album_ids)
    except (CredentialError, SpotifyApiError) as exc:
        return _error_text("saving albums", exc)
    return f"Successfully saved {_albums(len(album_ids))} to your library"


@mcp.tool(name="removeAlbumsForUser")
async def remove_albums_for_user(album_ids: List[str]) -> str:
    """Remove albums from the user's "Your Music" library (max 20)."""
    invalid = _album_ids_error(album_ids)
    if invalid:
        return invalid
    try:
        await get_spotify_api_client().remove_albums(album_ids)
    except (CredentialError, SpotifyApiError) as exc:
        return _error_text("removing albums", exc)
    return f"Successfully removed {_albums(len(album_ids))} from your library"


@mcp.tool(name="checkUsersSavedAlbums")
async def check_users_saved_albums(album_ids: List[str]) -> str:
    """Check if albums are saved in the user's "Your Music" library (max 20)."""
    invalid = _album_ids_error(album_ids)
    if invalid:
        return invalid
    try:
        saved = await get_spotify_api_client().check_saved_albums(album_ids)
    except (CredentialError, SpotifyApiError) as exc:
        return _error_text("checking saved albums", exc)

    lines = [
        f"{index}. {album_id}: {'Saved' if is_saved else 'Not saved'}"
        for index, (album_id, is_saved) in enumerate(zip(album_ids, saved), start=1)
    ]
    return "# Album Save Status\n\n" + "\n".join(lines)


@mcp.tool(name="authStatus")
async def auth_status() -> str:
    """Report whether Spotify credentials are configured, authorized and fresh."""
    try:
        status = get_credential_manager().status()
    except CredentialError as exc:
        return _error_text("reading credential status", exc)

    if not status.configured:
        return (
            "Spotify client identity is not configured. Set SPOTIFY_CLIENT_ID and "
            "SPOTIFY_CLIENT_SECRET."
        )
    if not status.bootstrapped:
        return AUTH_ERROR_MESSAGE
    freshness = "expired (will refresh on next use)" if status.expired else "valid"
    return f"Spotify is authorized. Access token is {freshness}."


def main() -> None:
    """Run the MCP server over stdio."""
    configure_logging(get_settings().log_level)
    logger.info("Spotify MCP server running on stdio")
    mcp.run()


if __name__ == "__main__":
    main()
