"""Helpers shared by CLI commands."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

import click

from possync.cli.config import load_settings
from possync.client.directory import StoreDirectoryClient, resolve_locations
from possync.client.errors import NoLocationsError

if TYPE_CHECKING:
    from possync.core.config import Settings
    from possync.core.types import LocationConfig


def get_settings() -> Settings:
    """Load settings, exiting with an error message if they are invalid."""
    try:
        return load_settings()
    except ValueError as e:
        click.echo(f"Error: invalid configuration: {e}", err=True)
        sys.exit(1)


def get_locations(settings: Settings) -> list[LocationConfig]:
    """Resolve locations, exiting with status 1 if there are none."""
    if not settings.sync.directory_url:
        click.echo("Error: no store directory configured (POSSYNC_DIRECTORY_URL)", err=True)
        sys.exit(1)
    try:
        with StoreDirectoryClient(
            settings.sync.directory_url,
            settings.sync.directory_token,
            settings.backoffice.timeout,
        ) as directory:
            return resolve_locations(directory)
    except NoLocationsError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
