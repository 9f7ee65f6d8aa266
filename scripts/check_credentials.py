"""Operator tool for inspecting and maintaining the Spotify credential record.

Sub-commands::

    # Validate settings and confirm the credentials document is readable.
    python -m scripts.check_credentials check --env-file .env

    # Show whether tokens are stored and when the access token expires.
    python -m scripts.check_credentials status

    # Force a refresh now, regardless of expiresAt.
    python -m scripts.check_credentials refresh

    # Headless bootstrap: print the consent URL, then exchange the code
    # Spotify appended to the redirect URI.
    python -m scripts.check_credentials authorize-url
    python -m scripts.check_credentials exchange --code AQB...
"""

from __future__ import annotations

import argparse
import asyncio
import secrets
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from pydantic import ValidationError

from spotify_mcp.clients import FileCredentialStore, SpotifyOAuthClient
from spotify_mcp.core.config import AppSettings, _load_env_file
from spotify_mcp.core.errors import (
    AuthExpiredError,
    AuthorizationFailedError,
    ConfigMissingError,
    CredentialError,
    NetworkError,
    NotBootstrappedError,
)
from spotify_mcp.services import AuthorizationBootstrapper, CredentialManager

EXIT_OK = 0
EXIT_CONFIG_ERROR = 2
EXIT_AUTH_ERROR = 3
EXIT_NETWORK_ERROR = 4
EXIT_RUNTIME_ERROR = 5


def _load_settings(env_file: Path) -> AppSettings:
    """Load settings, letting ``env_file`` fill in unset variables."""
    _load_env_file(str(env_file))
    return AppSettings()  # type: ignore[call-arg]


def _build_store(settings: AppSettings, credentials_file: Path | None) -> FileCredentialStore:
    return FileCredentialStore(
        credentials_file or settings.credentials.path,
        client_id=settings.spotify.client_id,
        client_secret=settings.spotify.client_secret,
        redirect_uri=settings.spotify.redirect_uri,
    )


def _format_expiry(expires_at: int | None) -> str:
    if expires_at is None:
        return "unknown"
    moment = datetime.fromtimestamp(expires_at / 1000, tz=timezone.utc)
    return moment.isoformat()


def _check(store: FileCredentialStore, settings: AppSettings) -> int:
    store.load()
    print(f"Configuration OK; credentials file: {store.path}")
    return EXIT_OK


def _status(store: FileCredentialStore, settings: AppSettings) -> int:
    manager = CredentialManager(
        store,
        SpotifyOAuthClient(timeout=settings.credentials.http_timeout_seconds),
        refresh_margin_seconds=settings.credentials.refresh_margin_seconds,
    )
    status = manager.status()
    print(f"Credentials file: {store.path} (exists: {store.exists()})")
    print(f"Configured:       {status.configured}")
    print(f"Authorized:       {status.bootstrapped}")
    print(f"Access token:     {'expired' if status.expired else 'valid'}")
    print(f"Expires at:       {_format_expiry(status.expires_at)}")
    if not status.configured:
        return EXIT_CONFIG_ERROR
    if not status.bootstrapped:
        return EXIT_AUTH_ERROR
    return EXIT_OK


def _refresh(store: FileCredentialStore, settings: AppSettings) -> int:
    manager = CredentialManager(
        store,
        SpotifyOAuthClient(timeout=settings.credentials.http_timeout_seconds),
        refresh_margin_seconds=settings.credentials.refresh_margin_seconds,
    )
    asyncio.run(manager.force_refresh())
    record = store.load()
    print(f"Access token refreshed; expires at {_format_expiry(record.expires_at)}")
    return EXIT_OK


def _bootstrapper(store: FileCredentialStore, settings: AppSettings) -> AuthorizationBootstrapper:
    return AuthorizationBootstrapper(
        store,
        SpotifyOAuthClient(timeout=settings.credentials.http_timeout_seconds),
        scopes=settings.spotify.scope_list,
        show_dialog=settings.oauth.show_dialog,
    )


def _authorize_url(store: FileCredentialStore, settings: AppSettings) -> int:
    url = _bootstrapper(store, settings).authorization_url(secrets.token_urlsafe(16))
    print(url)
    return EXIT_OK


def _exchange(store: FileCredentialStore, settings: AppSettings, code: str) -> int:
    record = asyncio.run(_bootstrapper(store, settings).bootstrap(code))
    print(
        f"Stored Spotify tokens in {store.path}; access token expires at "
        f"{_format_expiry(record.expires_at)}"
    )
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Inspect and maintain the Spotify OAuth credential record."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common_arguments(subparser: argparse.ArgumentParser) -> None:
        subparser.add_argument(
            "--env-file",
            default=".env",
            type=Path,
            help="Path to the environment file (default: .env in the working directory).",
        )
        subparser.add_argument(
            "--credentials-file",
            default=None,
            type=Path,
            help="Override SPOTIFY_CREDENTIALS_FILE.",
        )

    add_common_arguments(
        subparsers.add_parser("check", help="Validate settings and the credentials file.")
    )
    add_common_arguments(
        subparsers.add_parser("status", help="Show the stored token state.")
    )
    add_common_arguments(
        subparsers.add_parser("refresh", help="Refresh the access token immediately.")
    )
    add_common_arguments(
        subparsers.add_parser(
            "authorize-url", help="Print the Spotify consent URL to start authorization."
        )
    )
    exchange_parser = subparsers.add_parser(
        "exchange", help="Exchange an authorization code for the first token pair."
    )
    add_common_arguments(exchange_parser)
    exchange_parser.add_argument(
        "--code",
        required=True,
        help="The code query parameter Spotify appended to the redirect URI.",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        settings = _load_settings(args.env_file)
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_CONFIG_ERROR

    store = _build_store(settings, args.credentials_file)
    command: str = args.command
    handlers: dict[str, Callable[[], int]] = {
        "check": lambda: _check(store, settings),
        "status": lambda: _status(store, settings),
        "refresh": lambda: _refresh(store, settings),
        "authorize-url": lambda: _authorize_url(store, settings),
        "exchange": lambda: _exchange(store, settings, args.code),
    }

    try:
        return handlers[command]()
    except ConfigMissingError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except (NotBootstrappedError, AuthExpiredError, AuthorizationFailedError) as exc:
        print(f"Authorization required: {exc}", file=sys.stderr)
        return EXIT_AUTH_ERROR
    except NetworkError as exc:
        print(f"Network error talking to Spotify: {exc}", file=sys.stderr)
        return EXIT_NETWORK_ERROR
    except CredentialError as exc:
        print(f"Credential storage error: {exc}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
