try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import json
import os
from pathlib import Path

import pytest

from spotify_mcp.clients.credential_store import FileCredentialStore
from spotify_mcp.core.errors import ConfigMissingError, PersistenceError
from spotify_mcp.models.credentials import CredentialRecord


def _write(path: Path, payload: dict) -> None:
    path.write_text(json.dumps(payload), encoding="utf-8")


def test_load_without_document_uses_configured_identity(tmp_path: Path) -> None:
    store = FileCredentialStore(
        tmp_path / "spotify-config.json",
        client_id="cid",
        client_secret="secret",
        redirect_uri="http://127.0.0.1:8888/callback",
    )

    record = store.load()

    assert record.client_id == "cid"
    assert record.client_secret == "secret"
    assert record.redirect_uri == "http://127.0.0.1:8888/callback"
    assert record.access_token is None
    assert not record.is_bootstrapped
    assert not store.exists()


def test_load_without_any_identity_raises_config_missing(tmp_path: Path) -> None:
    store = FileCredentialStore(tmp_path / "spotify-config.json")

    with pytest.raises(ConfigMissingError):
        store.load()


def test_document_fields_take_precedence_over_configuration(tmp_path: Path) -> None:
    path = tmp_path / "spotify-config.json"
    _write(
        path,
        {
            "clientId": "file-client",
            "clientSecret": "file-secret",
            "accessToken": "A1",
            "refreshToken": "R1",
            "expiresAt": 1_700_000_000_000,
        },
    )
    store = FileCredentialStore(
        path,
        client_id="env-client",
        client_secret="env-secret",
        redirect_uri="http://127.0.0.1:8888/callback",
    )

    record = store.load()

    assert record.client_id == "file-client"
    assert record.client_secret == "file-secret"
    assert record.redirect_uri == "http://127.0.0.1:8888/callback"
    assert record.access_token == "A1"
    assert record.expires_at == 1_700_000_000_000


def test_save_writes_camel_case_document_and_omits_missing_fields(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "spotify-config.json"
    store = FileCredentialStore(path)
    record = CredentialRecord(
        client_id="cid",
        client_secret="secret",
        access_token="A1",
        refresh_token="R1",
        expires_at=123,
    )

    store.save(record)

    document = json.loads(path.read_text(encoding="utf-8"))
    assert document == {
        "clientId": "cid",
        "clientSecret": "secret",
        "accessToken": "A1",
        "refreshToken": "R1",
        "expiresAt": 123,
    }
    assert [p.name for p in path.parent.iterdir()] == ["spotify-config.json"]


def test_every_load_reflects_latest_durable_state(tmp_path: Path) -> None:
    path = tmp_path / "spotify-config.json"
    store = FileCredentialStore(path, client_id="cid", client_secret="secret")
    other_process = FileCredentialStore(path, client_id="cid", client_secret="secret")

    store.save(CredentialRecord(client_id="cid", client_secret="secret", access_token="A1"))
    assert other_process.load().access_token == "A1"

    other_process.save(
        CredentialRecord(client_id="cid", client_secret="secret", access_token="A2")
    )
    assert store.load().access_token == "A2"


def test_corrupt_document_raises_persistence_error(tmp_path: Path) -> None:
    path = tmp_path / "spotify-config.json"
    path.write_text("{not json", encoding="utf-8")
    store = FileCredentialStore(path, client_id="cid", client_secret="secret")

    with pytest.raises(PersistenceError):
        store.load()


def test_non_object_document_raises_persistence_error(tmp_path: Path) -> None:
    path = tmp_path / "spotify-config.json"
    path.write_text("[]", encoding="utf-8")
    store = FileCredentialStore(path, client_id="cid", client_secret="secret")

    with pytest.raises(PersistenceError):
        store.load()


def test_save_failure_surfaces_persistence_error_and_keeps_previous_document(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    path = tmp_path / "spotify-config.json"
    store = FileCredentialStore(path)
    store.save(CredentialRecord(client_id="cid", client_secret="secret", access_token="A1"))

    def failing_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", failing_replace)

    with pytest.raises(PersistenceError):
        store.save(
            CredentialRecord(client_id="cid", client_secret="secret", access_token="A2")
        )

    assert json.loads(path.read_text(encoding="utf-8"))["accessToken"] == "A1"
    assert [p.name for p in tmp_path.iterdir()] == ["spotify-config.json"]
