"""JSON file-backed storage for the Spotify credential record."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from spotify_mcp.core.errors import ConfigMissingError, PersistenceError
from spotify_mcp.models.credentials import CredentialRecord

logger = logging.getLogger(__name__)


class FileCredentialStore:
    """Load and persist the credential record as a human-readable JSON document.

    Nothing is cached between calls: every ``load`` reads the file again so
    separate processes sharing the document observe each other's writes.
    Identity configured through settings fills in whatever the document lacks.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        redirect_uri: Optional[str] = None,
    ) -> None:
        self._path = Path(path)
        self._defaults = {
            "client_id": client_id,
            "client_secret": client_secret,
            "redirect_uri": redirect_uri,
        }

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.exists()

    def load(self) -> CredentialRecord:
        """Return the current record, seeded from configuration if needed."""
        record = self._read() or CredentialRecord()
        for field, value in self._defaults.items():
            if value and not getattr(record, field):
                setattr(record, field, value)

        if not record.has_identity:
            raise ConfigMissingError(
                "No Spotify client identity configured. Set SPOTIFY_CLIENT_ID and "
                f"SPOTIFY_CLIENT_SECRET or add clientId/clientSecret to {self._path}."
            )
        return record

    def save(self, record: CredentialRecord) -> None:
        """Atomically replace the document with ``record``."""
        payload = json.dumps(record.to_document(), indent=2)
        tmp_path: Optional[str] = None
        try:
            if self._path.parent and not self._path.parent.exists():
                self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                dir=str(self._path.parent),
            )
            with os.fdopen(tmp_fd, "w", encoding="utf-8") as handle:
                handle.write(payload + "\n")
                handle.flush()
                os.fsync(handle.fileno())
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self._path)
        except OSError as exc:
            logger.error("Failed to persist credentials to %s: %s", self._path, exc)
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise PersistenceError(
                f"Could not write credentials to {self._path}: {exc}"
            ) from exc

    def _read(self) -> Optional[CredentialRecord]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise PersistenceError(
                f"Could not read credentials from {self._path}: {exc}"
            ) from exc

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise PersistenceError(
                f"Credentials file {self._path} is not valid JSON: {exc}"
            ) from exc
        if not isinstance(data, dict):
            raise PersistenceError(
                f"Credentials file {self._path} must contain a JSON object."
            )

        try:
            return CredentialRecord.model_validate(data)
        except ValidationError as exc:
            raise PersistenceError(
                f"Credentials file {self._path} has invalid fields: {exc}"
            ) from exc


__all__ = ["FileCredentialStore"]
