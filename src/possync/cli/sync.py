"""Sync commands for the possync CLI.

Commands:
- run: Start the scheduled sync service (blocking)
- sync: Run one sync cycle now and print its summary
- locations: List the resolved locations
"""

from __future__ import annotations

import signal
import threading
from pathlib import Path
from typing import TYPE_CHECKING

import click

from possync.cli.common import get_locations, get_settings
from possync.cli.config import setup_logging

if TYPE_CHECKING:
    from possync.core.types import CycleSummary


def format_cycle_summary(summary: CycleSummary) -> list[str]:
    """Render a cycle summary as text lines."""
    lines = [
        f"Sync cycle: {summary.location_count} locations, {summary.duration:.1f}s",
    ]
    for phase in summary.phases:
        if phase.skipped:
            lines.append(f"  {phase.phase.label:<14} skipped ({phase.skip_reason})")
            continue
        counts = phase.counts
        lines.append(
            f"  {phase.phase.label:<14} {phase.success_count} ok, {phase.error_count} failed, "
            f"{counts.items_processed} processed ({counts.items_created} created, "
            f"{counts.items_updated} updated)"
        )
        for failure in phase.failures:
            lines.append(f"    ! {failure.location_id}: {failure.error_kind}: {failure.error}")
    lines.append(f"Total synced: {summary.total_synced}, errors: {summary.total_errors}")
    return lines


@click.command()
@click.option("--log-file", type=click.Path(path_type=Path), help="Also log to this file.")
@click.option("--log-level", default="INFO", show_default=True, help="Log level.")
def run(log_file: Path | None, log_level: str) -> None:
    """Start the sync service.

    Runs a cycle at startup and every sync interval, plus the daily banner
    sync and GL export. Stops on Ctrl+C or SIGTERM.
    """
    from possync.service import build_service

    setup_logging(log_level, log_file)
    settings = get_settings()
    service = build_service(settings, get_locations(settings))
    scheduler = service.build_scheduler()

    stop = threading.Event()
    signal.signal(signal.SIGTERM, lambda *_: stop.set())

    scheduler.start()
    click.echo(f"possync running for {len(service.locations)} locations. Press Ctrl+C to stop.")
    try:
        while not stop.wait(1.0):
            pass
    except KeyboardInterrupt:
        pass
    finally:
        scheduler.stop()
        service.close()
        click.echo("possync stopped.")


@click.command()
@click.option("--log-level", default="WARNING", show_default=True, help="Log level.")
def sync(log_level: str) -> None:
    """Run one sync cycle now and print its summary."""
    from possync.service import build_service

    setup_logging(log_level)
    settings = get_settings()
    service = build_service(settings, get_locations(settings))
    try:
        summary = service.run_cycle()
    finally:
        service.close()

    for line in format_cycle_summary(summary):
        click.echo(line)


@click.command()
def locations() -> None:
    """List the active, credentialed locations."""
    settings = get_settings()
    resolved = get_locations(settings)

    click.echo(f"{len(resolved)} locations:")
    for location in resolved:
        loc_id = location.backoffice_loc_id
        click.echo(
            f"  {location.location_id}  {location.name}"
            f"  store={location.external_store_id or '-'}"
            f"  locId={loc_id if loc_id is not None else '-'}"
        )
