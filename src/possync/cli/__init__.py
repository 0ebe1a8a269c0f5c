"""Command-line interface for possync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- run: Start the scheduled sync service
- sync: Run one sync cycle now
- locations: List resolved locations
- prepaid: Backoffice payment totals for a location and day
- gl-export: GL journal rows for a day
"""

from __future__ import annotations

import click

from possync import __version__
from possync.cli.config import (
    get_config_dir,
    get_config_file,
    load_config,
    load_settings,
    save_config,
    setup_logging,
)
from possync.cli.reports import gl_export, prepaid
from possync.cli.sync import locations, run, sync


@click.group()
@click.version_option(__version__)
def cli() -> None:
    """possync - POS backoffice sync service."""


# Sync commands
cli.add_command(run)
cli.add_command(sync)
cli.add_command(locations)

# Report commands
cli.add_command(prepaid)
cli.add_command(gl_export)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    # Config utilities
    "get_config_dir",
    "get_config_file",
    "load_config",
    "load_settings",
    "save_config",
    "setup_logging",
]
