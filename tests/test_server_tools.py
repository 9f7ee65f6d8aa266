try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from spotify_mcp import server
from spotify_mcp.clients.spotify_api import SpotifyApiError
from spotify_mcp.core.errors import AuthExpiredError, NetworkError, NotBootstrappedError
from spotify_mcp.models.credentials import CredentialStatus


class FakeApiClient:
    def __init__(self, *, error: Exception | None = None, **payloads) -> None:
        self.error = error
        self.payloads = payloads
        self.calls: list[tuple] = []

    async def _answer(self, name: str, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        if self.error is not None:
            raise self.error
        return self.payloads.get(name)

    async def get_available_devices(self):
        return await self._answer("devices")

    async def get_currently_playing(self):
        return await self._answer("now_playing")

    async def get_album(self, album_id):
        return await self._answer("album", album_id)

    async def get_albums(self, album_ids):
        return await self._answer("albums", album_ids)

    async def get_album_tracks(self, album_id, *, limit, offset):
        return await self._answer("tracks", album_id, limit=limit, offset=offset)

    async def get_new_releases(self, *, limit, offset):
        return await self._answer("new_releases", limit=limit, offset=offset)

    async def get_saved_albums(self, *, limit, offset):
        return await self._answer("saved_albums", limit=limit, offset=offset)

    async def save_albums(self, album_ids):
        return await self._answer("save", album_ids)

    async def remove_albums(self, album_ids):
        return await self._answer("remove", album_ids)

    async def check_saved_albums(self, album_ids):
        return await self._answer("contains", album_ids)


class FakeManager:
    def __init__(self, status: CredentialStatus) -> None:
        self._status = status

    def status(self) -> CredentialStatus:
        return self._status


@pytest.fixture()
def use_client(monkeypatch):
    def _install(client: FakeApiClient) -> FakeApiClient:
        monkeypatch.setattr(server, "get_spotify_api_client", lambda: client)
        return client

    return _install


ALBUM = {
    "id": "album-1",
    "name": "Blue Train",
    "artists": [{"name": "John Coltrane"}],
    "release_date": "1957-09-15",
    "album_type": "album",
    "total_tracks": 5,
}


@pytest.mark.anyio
async def test_devices_lists_names_and_ids(use_client) -> None:
    use_client(FakeApiClient(devices=[{"id": "d1", "name": "Kitchen"}]))

    text = await server.devices()

    assert text == "Available devices: \n- Kitchen (d1)"


@pytest.mark.anyio
async def test_devices_reports_empty_list(use_client) -> None:
    use_client(FakeApiClient(devices=[]))

    assert await server.devices() == "No available devices found."


@pytest.mark.anyio
@pytest.mark.parametrize(
    "error", [NotBootstrappedError("no tokens"), AuthExpiredError("refresh revoked")]
)
async def test_authorization_failures_point_to_the_authorize_flow(use_client, error) -> None:
    use_client(FakeApiClient(error=error))

    text = await server.devices()

    assert text.startswith("Error getting devices:")
    assert server.AUTH_ERROR_MESSAGE in text


@pytest.mark.anyio
async def test_transient_failures_are_reported_without_auth_hint(use_client) -> None:
    use_client(FakeApiClient(error=NetworkError("connection reset")))

    text = await server.get_now_playing()

    assert text == "Error getting current track: connection reset"


@pytest.mark.anyio
async def test_api_errors_are_reported(use_client) -> None:
    use_client(FakeApiClient(error=SpotifyApiError(404, "non existing id")))

    text = await server.get_album("missing")

    assert text == "Error getting album: Spotify API error 404: non existing id"


@pytest.mark.anyio
async def test_now_playing_formats_track(use_client) -> None:
    use_client(
        FakeApiClient(
            now_playing={
                "is_playing": True,
                "progress_ms": 65_000,
                "item": {
                    "id": "t1",
                    "name": "Moment's Notice",
                    "duration_ms": 550_000,
                    "artists": [{"name": "John Coltrane"}],
                    "album": {"name": "Blue Train"},
                },
            }
        )
    )

    text = await server.get_now_playing()

    assert "# Currently Playing" in text
    assert "**Track**: \"Moment's Notice\"" in text
    assert "**Progress**: 1:05 / 9:10" in text


@pytest.mark.anyio
async def test_now_playing_when_idle(use_client) -> None:
    use_client(FakeApiClient(now_playing=None))

    assert await server.get_now_playing() == "Nothing is currently playing on Spotify."


@pytest.mark.anyio
async def test_album_details(use_client) -> None:
    client = use_client(FakeApiClient(album=ALBUM))

    text = await server.get_album("album-1")

    assert client.calls == [("album", ("album-1",), {})]
    assert "**Name**: \"Blue Train\"" in text
    assert "**Total Tracks**: 5" in text


@pytest.mark.anyio
@pytest.mark.parametrize(
    "album_ids, expected",
    [
        ([], "Error: No album IDs provided"),
        ([f"id-{n}" for n in range(21)], "Error: At most 20 album IDs can be requested at once"),
    ],
)
async def test_multiple_albums_validates_id_count(use_client, album_ids, expected) -> None:
    client = use_client(FakeApiClient(albums=[]))

    assert await server.get_multiple_albums(album_ids) == expected
    assert client.calls == []


@pytest.mark.anyio
async def test_multiple_albums_marks_missing_entries(use_client) -> None:
    use_client(FakeApiClient(albums=[ALBUM, None]))

    text = await server.get_multiple_albums(["album-1", "missing"])

    assert "1. \"Blue Train\" by John Coltrane" in text
    assert "2. [Album not found]" in text


@pytest.mark.anyio
async def test_album_tracks_clamps_limit_and_numbers_from_offset(use_client) -> None:
    client = use_client(
        FakeApiClient(
            tracks={
                "items": [
                    {"id": "t6", "name": "Locomotion", "duration_ms": 434_000, "artists": []}
                ],
                "total": 5,
            }
        )
    )

    text = await server.get_album_tracks("album-1", limit=500, offset=5)

    assert client.calls == [("tracks", ("album-1",), {"limit": 50, "offset": 5})]
    assert text.startswith("# Album Tracks (6-6 of 5)")
    assert "6. \"Locomotion\"" in text


@pytest.mark.anyio
@pytest.mark.parametrize(
    "status, expected",
    [
        (
            CredentialStatus(configured=False, bootstrapped=False, expired=True),
            "Spotify client identity is not configured.",
        ),
        (
            CredentialStatus(configured=True, bootstrapped=False, expired=True),
            server.AUTH_ERROR_MESSAGE,
        ),
        (
            CredentialStatus(configured=True, bootstrapped=True, expired=False),
            "Spotify is authorized. Access token is valid.",
        ),
    ],
)
async def test_auth_status_summarises_credentials(monkeypatch, status, expected) -> None:
    monkeypatch.setattr(server, "get_credential_manager", lambda: FakeManager(status))

    text = await server.auth_status()

    assert text.startswith(expected)


@pytest.mark.anyio
async def test_new_releases_lists_page_with_offset_numbering(use_client) -> None:
    client = use_client(
        FakeApiClient(new_releases={"items": [ALBUM, None], "total": 40})
    )

    text = await server.get_new_releases(limit=2, offset=10)

    assert client.calls == [("new_releases", (), {"limit": 2, "offset": 10})]
    assert text.startswith("# New Releases (11-12 of 40)")
    assert "11. \"Blue Train\" by John Coltrane (1957-09-15) - ID: album-1" in text
    assert "2. [Album not found]" in text


@pytest.mark.anyio
async def test_new_releases_when_empty(use_client) -> None:
    use_client(FakeApiClient(new_releases={"items": [], "total": 0}))

    assert await server.get_new_releases() == "No new releases found"


@pytest.mark.anyio
async def test_saved_albums_include_added_date(use_client) -> None:
    client = use_client(
        FakeApiClient(
            saved_albums={
                "items": [{"added_at": "2024-03-02T18:22:01Z", "album": ALBUM}],
                "total": 1,
            }
        )
    )

    text = await server.get_users_saved_albums()

    assert client.calls == [("saved_albums", (), {"limit": 20, "offset": 0})]
    assert text.startswith("# Your Saved Albums (1-1 of 1)")
    assert text.endswith("- ID: album-1 - Added: 2024-03-02")


@pytest.mark.anyio
async def test_saved_albums_when_library_is_empty(use_client) -> None:
    use_client(FakeApiClient(saved_albums={"items": [], "total": 0}))

    text = await server.get_users_saved_albums()

    assert text == "You don't have any saved albums in your library"


@pytest.mark.anyio
async def test_save_albums_reports_count(use_client) -> None:
    client = use_client(FakeApiClient())

    assert await server.save_albums_for_user(["a1"]) == (
        "Successfully saved 1 album to your library"
    )
    assert await server.save_albums_for_user(["a1", "a2"]) == (
        "Successfully saved 2 albums to your library"
    )
    assert client.calls[0] == ("save", (["a1"],), {})


@pytest.mark.anyio
async def test_remove_albums_reports_count(use_client) -> None:
    client = use_client(FakeApiClient())

    text = await server.remove_albums_for_user(["a1", "a2", "a3"])

    assert text == "Successfully removed 3 albums from your library"
    assert client.calls == [("remove", (["a1", "a2", "a3"],), {})]


@pytest.mark.anyio
async def test_check_saved_albums_lists_status_per_id(use_client) -> None:
    use_client(FakeApiClient(contains=[True, False]))

    text = await server.check_users_saved_albums(["a1", "a2"])

    assert text == "# Album Save Status\n\n1. a1: Saved\n2. a2: Not saved"


@pytest.mark.anyio
@pytest.mark.parametrize(
    "tool",
    [
        server.save_albums_for_user,
        server.remove_albums_for_user,
        server.check_users_saved_albums,
    ],
)
@pytest.mark.parametrize(
    "album_ids, expected",
    [
        ([], "Error: No album IDs provided"),
        ([f"id-{n}" for n in range(21)], "Error: At most 20 album IDs can be requested at once"),
    ],
)
async def test_library_tools_validate_id_count(use_client, tool, album_ids, expected) -> None:
    client = use_client(FakeApiClient())

    assert await tool(album_ids) == expected
    assert client.calls == []


@pytest.mark.anyio
@pytest.mark.parametrize(
    "call, action",
    [
        (lambda: server.save_albums_for_user(["a1"]), "saving albums"),
        (lambda: server.remove_albums_for_user(["a1"]), "removing albums"),
        (lambda: server.check_users_saved_albums(["a1"]), "checking saved albums"),
        (lambda: server.get_users_saved_albums(), "getting saved albums"),
        (lambda: server.get_new_releases(), "getting new releases"),
    ],
)
async def test_library_tool_failures_are_rendered_as_text(use_client, call, action) -> None:
    use_client(FakeApiClient(error=SpotifyApiError(None, "Could not reach the Spotify Web API: boom")))

    text = await call()

    assert text == f"Error {action}: Spotify API error: Could not reach the Spotify Web API: boom"
