"""Report commands for the possync CLI.

Commands:
- prepaid: Backoffice payment totals of a location for one day
- gl-export: GL journal rows of all locations for one day
"""

from __future__ import annotations

import sys
from datetime import date, datetime, timedelta

import click

from possync.cli.common import get_locations, get_settings
from possync.cli.config import setup_logging
from possync.client.errors import ApiError


def _report_date(value: datetime | None) -> date:
    if value is None:
        return date.today() - timedelta(days=1)
    return value.date()


@click.command()
@click.option("--loc-id", type=int, required=True, help="Backoffice location id.")
@click.option(
    "--date",
    "day",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    help="Report date (default: yesterday).",
)
def prepaid(loc_id: int, day: datetime | None) -> None:
    """Show prepaid and electronic payment totals from the closing report."""
    from possync.client.api import ResilientApiClient
    from possync.client.backoffice import BackofficeClient

    setup_logging("WARNING")
    settings = get_settings()
    report_date = _report_date(day)

    with ResilientApiClient.from_config(settings.backoffice) as api:
        try:
            summary = BackofficeClient(api).get_payment_summary(loc_id, report_date)
        except ApiError as e:
            click.echo(f"Error: {type(e).__name__}: {e}", err=True)
            sys.exit(1)

    if summary is None:
        click.echo(f"No closing report for locId {loc_id} on {report_date.isoformat()}")
        return

    click.echo(f"Closing report for locId {loc_id} on {report_date.isoformat()}:")
    click.echo(f"  Prepaid sales:   {summary.prepaid_sales:>12,.2f}")
    click.echo(f"  Electronic paid: {summary.electronic_paid:>12,.2f}")
    click.echo(f"  Paid in cash:    {summary.paid_in_cash:>12,.2f}")
    click.echo(f"  Paid in debit:   {summary.paid_in_debit:>12,.2f}")
    click.echo(f"  Total invoice:   {summary.total_invoice:>12,.2f}")
    click.echo(f"  Net sales:       {summary.net_sales:>12,.2f}")


@click.command("gl-export")
@click.option(
    "--date",
    "day",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    help="Business day (default: yesterday).",
)
def gl_export(day: datetime | None) -> None:
    """Print the GL journal of all locations for one day."""
    from possync.client.pos import PosClient
    from possync.export.gl import GlExportService
    from possync.sync.runner import PhaseRunner

    setup_logging("WARNING")
    settings = get_settings()
    locations = get_locations(settings)

    service = GlExportService(
        locations,
        lambda location: PosClient(location.api_key, settings.pos),
        PhaseRunner(max_workers=settings.sync.max_workers),
    )
    result = service.export_for_date(_report_date(day))

    click.echo(f"{'Branch':<12} {'Account':<8} {'Debit':>12} {'Credit':>12}  Description")
    for row in result.rows:
        click.echo(
            f"{row.branch:<12} {row.account:<8} {row.debit:>12,.2f} {row.credit:>12,.2f}"
            f"  {row.description}"
        )
    click.echo(
        f"{result.store_count}/{len(locations)} stores, "
        f"{result.total_sales:,.2f} total sales"
    )
    if not result.success:
        for store, error in result.failed_stores:
            click.echo(f"Failed: {store}: {error}", err=True)
        sys.exit(1)
