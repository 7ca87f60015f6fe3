"""Command-line interface for Drive JSON Sync.

Wraps the OAuth and Drive operations for manual use and scripting.
Token sets are printed as JSON; persisting them is left to the user.
"""

from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, TypeVar

import typer

from drive_json_sync import __version__
from drive_json_sync.config import Config, ConfigError, load_config
from drive_json_sync.drive.client import DriveClient
from drive_json_sync.exceptions import DriveSyncError
from drive_json_sync.logging_config import setup_logging
from drive_json_sync.oauth.flows import GoogleOAuthFlow
from drive_json_sync.security import generate_state
from drive_json_sync.sync import pull_json, push_json

T = TypeVar("T")

app = typer.Typer(
    name="drive-json-sync",
    help="Authenticate with Google and sync a JSON document to Drive",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"drive-json-sync version {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Drive JSON Sync CLI."""


def _load(config_path: str | None, **cli_args: Any) -> Config:
    config = load_config(path=config_path, cli_args=cli_args)
    setup_logging(config)
    return config


def _run(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine, turning library errors into a clean exit."""
    try:
        return asyncio.run(coro)
    except DriveSyncError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from None


def _fail(error: ConfigError) -> typer.Exit:
    typer.echo(f"Error: {error}", err=True)
    return typer.Exit(code=1)


@app.command("auth-url")
def auth_url(
    client_id: str | None = typer.Option(None, "--client-id", help="OAuth client ID"),
    state: str | None = typer.Option(None, "--state", help="State value (random if omitted)"),
    config_path: str | None = typer.Option(
        None, "--config", "-c", help="Path to configuration file (JSON or YAML)"
    ),
    log_level: str | None = typer.Option(None, "--log-level", "-l", help="Log level override"),
) -> None:
    """Print a consent URL together with its state and PKCE verifier."""
    try:
        config = _load(config_path, client_id=client_id, log_level=log_level)
        resolved_client_id = config.require_client_id()
    except ConfigError as e:
        raise _fail(e) from None

    flow = GoogleOAuthFlow()
    pkce = flow.create_pkce_pair()
    state = state or generate_state()
    url = flow.create_authorization_url(
        resolved_client_id, config.redirect_uri, config.scope, state, pkce.code_challenge
    )

    typer.echo(url)
    typer.echo(f"state: {state}", err=True)
    typer.echo(f"code_verifier: {pkce.code_verifier}", err=True)


@app.command()
def exchange(
    code: str = typer.Argument(..., help="Authorization code from the redirect"),
    verifier: str = typer.Option(..., "--verifier", help="PKCE code verifier"),
    client_id: str | None = typer.Option(None, "--client-id", help="OAuth client ID"),
    config_path: str | None = typer.Option(
        None, "--config", "-c", help="Path to configuration file (JSON or YAML)"
    ),
    log_level: str | None = typer.Option(None, "--log-level", "-l", help="Log level override"),
) -> None:
    """Exchange an authorization code and print the token set as JSON."""
    try:
        config = _load(config_path, client_id=client_id, log_level=log_level)
        resolved_client_id = config.require_client_id()
    except ConfigError as e:
        raise _fail(e) from None

    async def _exchange() -> dict[str, Any]:
        async with GoogleOAuthFlow(timeout=config.http_timeout) as flow:
            tokens = await flow.exchange_auth_code(
                resolved_client_id, code, verifier, config.redirect_uri
            )
        return tokens.to_dict()

    typer.echo(json.dumps(_run(_exchange()), indent=2))


@app.command()
def refresh(
    refresh_token: str = typer.Option(
        ..., "--refresh-token", envvar="DRIVE_SYNC_REFRESH_TOKEN", help="Refresh token"
    ),
    client_id: str | None = typer.Option(None, "--client-id", help="OAuth client ID"),
    config_path: str | None = typer.Option(
        None, "--config", "-c", help="Path to configuration file (JSON or YAML)"
    ),
    log_level: str | None = typer.Option(None, "--log-level", "-l", help="Log level override"),
) -> None:
    """Refresh an access token and print the token set as JSON.

    When Google does not issue a new refresh token, the one passed in
    is kept in the output.
    """
    try:
        config = _load(config_path, client_id=client_id, log_level=log_level)
        resolved_client_id = config.require_client_id()
    except ConfigError as e:
        raise _fail(e) from None

    async def _refresh() -> dict[str, Any]:
        async with GoogleOAuthFlow(timeout=config.http_timeout) as flow:
            tokens = await flow.refresh_access_token(resolved_client_id, refresh_token)
        return tokens.merge_refresh_token(refresh_token).to_dict()

    typer.echo(json.dumps(_run(_refresh()), indent=2))


@app.command()
def find(
    access_token: str = typer.Option(
        ..., "--access-token", envvar="DRIVE_SYNC_ACCESS_TOKEN", help="OAuth access token"
    ),
    name: str | None = typer.Option(None, "--name", "-n", help="Drive file name override"),
    config_path: str | None = typer.Option(
        None, "--config", "-c", help="Path to configuration file (JSON or YAML)"
    ),
    log_level: str | None = typer.Option(None, "--log-level", "-l", help="Log level override"),
) -> None:
    """Look up the synced file and print its metadata."""
    try:
        config = _load(config_path, file_name=name, log_level=log_level)
    except ConfigError as e:
        raise _fail(e) from None

    async def _find() -> dict[str, Any] | None:
        async with DriveClient(timeout=config.http_timeout) as drive:
            ref = await drive.find_file_by_name(access_token, config.file_name)
        if ref is None:
            return None
        return {
            "id": ref.id,
            "name": ref.name,
            "modifiedTime": ref.modified_time,
            "size": ref.size_bytes,
        }

    result = _run(_find())
    if result is None:
        typer.echo(f"No file named {config.file_name!r}", err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(result, indent=2))


@app.command()
def pull(
    access_token: str = typer.Option(
        ..., "--access-token", envvar="DRIVE_SYNC_ACCESS_TOKEN", help="OAuth access token"
    ),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write content here"),
    name: str | None = typer.Option(None, "--name", "-n", help="Drive file name override"),
    config_path: str | None = typer.Option(
        None, "--config", "-c", help="Path to configuration file (JSON or YAML)"
    ),
    log_level: str | None = typer.Option(None, "--log-level", "-l", help="Log level override"),
) -> None:
    """Download the synced file's content."""
    try:
        config = _load(config_path, file_name=name, log_level=log_level)
    except ConfigError as e:
        raise _fail(e) from None

    async def _pull() -> str | None:
        async with DriveClient(timeout=config.http_timeout) as drive:
            return await pull_json(drive, access_token, config.file_name)

    text = _run(_pull())
    if text is None:
        typer.echo(f"No file named {config.file_name!r}", err=True)
        raise typer.Exit(code=1)

    if output is None:
        typer.echo(text, nl=False)
    else:
        output.write_text(text, encoding="utf-8")


@app.command()
def push(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file to upload"),
    access_token: str = typer.Option(
        ..., "--access-token", envvar="DRIVE_SYNC_ACCESS_TOKEN", help="OAuth access token"
    ),
    name: str | None = typer.Option(None, "--name", "-n", help="Drive file name override"),
    config_path: str | None = typer.Option(
        None, "--config", "-c", help="Path to configuration file (JSON or YAML)"
    ),
    log_level: str | None = typer.Option(None, "--log-level", "-l", help="Log level override"),
) -> None:
    """Upload a local JSON file, creating the Drive file if it does not exist."""
    try:
        config = _load(config_path, file_name=name, log_level=log_level)
    except ConfigError as e:
        raise _fail(e) from None

    json_text = source.read_text(encoding="utf-8")

    async def _push() -> str:
        async with DriveClient(timeout=config.http_timeout) as drive:
            ref = await push_json(drive, access_token, config.file_name, json_text)
        return ref.id

    typer.echo(_run(_push()))


@app.command()
def version() -> None:
    """Print version information."""
    typer.echo(f"drive-json-sync version {__version__}")
    typer.echo(f"Python {sys.version}")


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
