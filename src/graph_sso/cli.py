# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Project: graph-sso

"""graph-sso CLI entry point."""

import os
import re
from pathlib import Path

import click
import uvicorn
from dotenv import dotenv_values
from pydantic import ValidationError

from graph_sso import __version__
from graph_sso.config import SSOConfig

GUID_PATTERN = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)
REQUIRED_SETTINGS = ("CLIENT_ID", "CLIENT_SECRET", "REDIRECT_URI", "TENANT_ID")
SECRET_SETTINGS = {"CLIENT_SECRET"}


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """Microsoft SSO example application."""


@main.command()
@click.option("--host", default=None, help="Bind host (defaults to HOST or 127.0.0.1)")
@click.option("--port", default=None, type=int, help="Bind port (defaults to PORT or 3000)")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the web server."""
    try:
        config = SSOConfig()  # type: ignore[call-arg]
    except ValidationError as e:
        raise click.ClickException(f"Invalid configuration:\n{e}") from e

    bind_host = host or config.host
    bind_port = port or config.port
    click.echo(f"Server running at http://{bind_host}:{bind_port}")
    click.echo(f"- OAuth callback URL: {config.redirect_uri}")
    uvicorn.run(
        "graph_sso.app:create_app",
        factory=True,
        host=bind_host,
        port=bind_port,
        reload=reload,
        log_config=None,
    )


def _mask(value: str) -> str:
    if len(value) <= 10:
        return "*" * len(value)
    return f"{value[:5]}...{value[-5:]}"


@main.command("check-env")
@click.option("--env-file", default=".env", type=click.Path(dir_okay=False), help="Path to the .env file")
def check_env(env_file: str) -> None:
    """Report which OAuth settings are present, without printing secrets."""
    path = Path(env_file)
    click.echo(f".env file exists: {path.exists()}")

    file_values = dotenv_values(path) if path.exists() else {}
    values = {name: os.environ.get(name) or file_values.get(name) for name in REQUIRED_SETTINGS}

    click.echo("\nEnvironment Variables:")
    for name, value in values.items():
        if not value:
            shown = "(not set)"
        elif name in SECRET_SETTINGS:
            shown = "(is set, value hidden)"
        else:
            shown = value
        click.echo(f"{name}: {shown}")

    client_id = values["CLIENT_ID"]
    if client_id:
        click.echo("\nCLIENT_ID details:")
        click.echo(f"- Length: {len(client_id)}")
        click.echo(f"- Format valid: {bool(GUID_PATTERN.match(client_id))}")
        has_whitespace = any(ch.isspace() for ch in client_id)
        click.echo(f"- Has whitespace: {has_whitespace}")
        click.echo(f"- Masked: {_mask(client_id)}")

    missing = [name for name, value in values.items() if not value]
    if missing:
        raise click.ClickException(f"Missing required settings: {', '.join(missing)}")


if __name__ == "__main__":
    main()
