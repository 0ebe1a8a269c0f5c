"""Hourly sales totals from POS transactions.

This module provides:
- previous_hour_range(): The last complete UTC hour
- aggregate_hour(): Reduce one location-hour of transactions to totals
- HourlySalesTask: Per-location fetch, aggregation and upsert
- HourlySalesService: Record one hour for all locations
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from possync.core.types import PhaseSummary, SyncCounts, SyncPhase
from possync.export.gl import branch_code
from possync.sync.tasks.base import PerLocationSyncTask

if TYPE_CHECKING:
    from possync.core.types import LocationConfig
    from possync.storage.database import SyncDatabase
    from possync.sync.runner import PhaseRunner
    from possync.sync.tasks.base import LocationPosClientFactory

logger = logging.getLogger(__name__)

HOUR = timedelta(hours=1)


@dataclass
class HourlyTotals:
    """Aggregated amounts of one location-hour."""

    gross_sales: float = 0.0
    discounts: float = 0.0
    returns: float = 0.0
    tax: float = 0.0
    cash_paid: float = 0.0
    debit_paid: float = 0.0
    loyalty_spent: float = 0.0
    transaction_count: int = 0

    @property
    def net_sales(self) -> float:
        return self.gross_sales - self.discounts - self.returns


def previous_hour_range(now: datetime) -> tuple[datetime, datetime]:
    """Start and end of the last complete UTC hour before now.

    Args:
        now: Current time; naive values are taken as local time.

    Returns:
        (hour_start, hour_end), both aware UTC, one hour apart.
    """
    current = now.astimezone(UTC).replace(minute=0, second=0, microsecond=0)
    start = current - HOUR
    return start, start + HOUR


def _iso_millis(moment: datetime) -> str:
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def hour_window_utc(hour_start: datetime) -> tuple[str, str]:
    """Query window of an hour; the end is the last millisecond inside it."""
    return _iso_millis(hour_start), _iso_millis(hour_start + HOUR - timedelta(milliseconds=1))


def _num(value: Any) -> float:
    return float(value or 0)


def aggregate_hour(transactions: Sequence[dict[str, Any]]) -> HourlyTotals:
    """Aggregate the transactions of one location-hour.

    Voids are ignored. Return transactions only add their absolute total to
    returns; every other transaction counts as a sale.
    """
    totals = HourlyTotals()
    for t in transactions:
        if t.get("isVoid"):
            continue
        if t.get("isReturn"):
            totals.returns += abs(_num(t.get("total")))
            continue
        totals.gross_sales += _num(t.get("subtotal"))
        totals.discounts += _num(t.get("totalDiscount"))
        totals.tax += _num(t.get("tax"))
        totals.cash_paid += _num(t.get("cashPaid")) - _num(t.get("changeDue"))
        totals.debit_paid += _num(t.get("debitPaid"))
        totals.loyalty_spent += _num(t.get("loyaltySpent"))
        totals.transaction_count += 1
    return totals


def hourly_row(
    location: LocationConfig, hour_start: datetime, totals: HourlyTotals
) -> dict[str, Any]:
    """Column values of the hourly_sales row of a location-hour."""
    hour_start = hour_start.astimezone(UTC)
    amounts = {k: round(v, 2) if isinstance(v, float) else v for k, v in asdict(totals).items()}
    return {
        "id": f"{location.location_id}_{hour_start:%Y%m%dT%H}",
        "location_id": location.location_id,
        "branch_code": branch_code(location),
        "store_name": location.name,
        "hour_start": hour_start,
        "hour_end": hour_start + HOUR,
        **amounts,
        "net_sales": round(totals.net_sales, 2),
    }


class HourlySalesTask(PerLocationSyncTask):
    """Fetch one hour of transactions and store its totals."""

    phase = SyncPhase.HOURLY_SALES

    def __init__(
        self,
        db: SyncDatabase,
        pos_clients: LocationPosClientFactory,
        hour_start: datetime,
    ) -> None:
        self._db = db
        self._pos_clients = pos_clients
        self._hour_start = hour_start

    def _do_work(self, location: LocationConfig) -> tuple[SyncCounts, HourlyTotals]:
        from_utc, to_utc = hour_window_utc(self._hour_start)
        with self._pos_clients(location) as pos:
            transactions = pos.get_transactions(
                from_utc, to_utc, include_detail=False, include_taxes=True
            )

        totals = aggregate_hour(transactions)
        created = self._db.upsert_hourly_sales(hourly_row(location, self._hour_start, totals))
        logger.info(
            f"{location.name}: {totals.transaction_count} transactions, "
            f"{totals.net_sales:,.2f} net sales in hour {from_utc}"
        )
        counts = SyncCounts(
            items_processed=len(transactions),
            items_created=int(created),
            items_updated=int(not created),
            items_skipped=len(transactions) - totals.transaction_count,
        )
        return counts, totals


class HourlySalesService:
    """Record the hourly sales of every location."""

    def __init__(
        self,
        locations: Sequence[LocationConfig],
        db: SyncDatabase,
        pos_clients: LocationPosClientFactory,
        runner: PhaseRunner,
    ) -> None:
        self._locations = list(locations)
        self._db = db
        self._pos_clients = pos_clients
        self._runner = runner

    def sync_hour(self, hour_start: datetime) -> PhaseSummary:
        """Record one hour; failed stores are logged, not fatal."""
        logger.info(
            f"Hourly sales for {hour_start.astimezone(UTC):%Y-%m-%d %H}:00 UTC: "
            f"{len(self._locations)} stores"
        )
        task = HourlySalesTask(self._db, self._pos_clients, hour_start)
        summary = self._runner.run(task, self._locations)
        logger.info(
            f"Hourly sales complete: {summary.success_count}/{len(self._locations)} stores"
        )
        return summary

    def sync_previous_hour(self, now: datetime | None = None) -> PhaseSummary:
        hour_start, _ = previous_hour_range(now or datetime.now(UTC))
        return self.sync_hour(hour_start)
