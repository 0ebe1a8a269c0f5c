"""Daily GL journal export from POS transactions.

This module provides:
- aggregate_transactions(): Reduce one store-day of transactions to totals
- generate_gl_rows(): Ten balanced journal rows per store-day
- GlExportTask: Per-location fetch + aggregation, run through PhaseRunner
- GlExportService: Export for all locations with failed stores listed
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import TYPE_CHECKING, Any
from zoneinfo import ZoneInfo

from possync.core.types import SyncCounts, SyncPhase
from possync.sync.tasks.base import PerLocationSyncTask

if TYPE_CHECKING:
    from possync.core.types import LocationConfig
    from possync.sync.runner import PhaseRunner
    from possync.sync.tasks.base import LocationPosClientFactory

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "America/New_York"
BRAND_PREFIX = "Mint "

STATE_TIMEZONES = {
    "FL": "America/New_York",
    "MI": "America/Detroit",
    "AZ": "America/Phoenix",
    "NV": "America/Los_Angeles",
    "MO": "America/Chicago",
    "IL": "America/Chicago",
}

LOYALTY_PREFIXES = ("* LOYALTY", "DUTCHIE LOYALTY")


@dataclass(frozen=True)
class GlAccount:
    code: str
    description: str
    side: str  # "debit", "credit" or "balance"
    field: str


ACCOUNTS = (
    GlAccount("40001", "Retail Income: Retail Sales", "credit", "gross_sales"),
    GlAccount("40002", "Retail Income: Retail: Discounts and Coupons", "debit", "discounts"),
    GlAccount("40003", "Retail Income: Sales Return", "debit", "returns"),
    GlAccount("40004", "Loyalty Discounts", "debit", "loyalty_spent"),
    GlAccount("23500", "Taxes Payable - Sales & Use", "credit", "tax"),
    GlAccount("10000", "Cash on Hand", "debit", "net_cash"),
    GlAccount("11010", "Debit Card Receivable", "debit", "debit_paid"),
    GlAccount("70260", "Overage/Shortage: Cash Ledger Adj", "balance", "overage"),
    GlAccount("50000", "Retail - Consumable Products for Resale", "debit", "cogs"),
    GlAccount("12250", "Inventory - Finished Goods", "credit", "cogs"),
)


@dataclass
class GlTotals:
    """Aggregated amounts of one store-day."""

    gross_sales: float = 0.0
    discounts: float = 0.0
    loyalty_spent: float = 0.0
    # Returns are backdated to the original sale and never booked here
    returns: float = 0.0
    tax: float = 0.0
    cash_paid: float = 0.0
    change_due: float = 0.0
    cash_only_change_due: float = 0.0
    credit_paid: float = 0.0
    total_paid: float = 0.0
    debit_paid: float = 0.0
    cogs: float = 0.0
    net_cash: float = 0.0
    overage: float = 0.0
    transaction_count: int = 0


@dataclass
class GlRow:
    """One journal line."""

    branch: str
    store_name: str
    account: str
    description: str
    ref_number: str
    quantity: float = 1.0
    debit: float = 0.0
    credit: float = 0.0
    memo: str = ""
    counterparty: str = ""


@dataclass
class GlExportResult:
    """Outcome of an export over all locations."""

    report_date: date
    rows: list[GlRow] = field(default_factory=list)
    failed_stores: list[tuple[str, str]] = field(default_factory=list)
    total_sales: float = 0.0
    store_count: int = 0

    @property
    def success(self) -> bool:
        return not self.failed_stores


def store_timezone(location: LocationConfig) -> str:
    """IANA timezone of a store (metadata, then state, then Eastern)."""
    tz = location.metadata.get("timezone")
    if tz:
        return str(tz)
    state = str(location.metadata.get("state") or "").upper()
    return STATE_TIMEZONES.get(state, DEFAULT_TIMEZONE)


def branch_code(location: LocationConfig) -> str:
    """Accounting branch code, or an UNK- code derived from the name."""
    code = location.metadata.get("branchCode")
    if code:
        return str(code)
    name = location.name.strip()
    if name.startswith(BRAND_PREFIX):
        name = name[len(BRAND_PREFIX):]
    words = name.split()
    return f"UNK-{words[0][:6].upper()}" if words else "UNK-"


def fetch_window_utc(report_date: date, timezone: str) -> tuple[str, str]:
    """UTC query window for a local business day, padded by a day on each side.

    Transactions are filtered afterwards on their local date, so the padding
    only makes sure edge-of-day transactions are fetched.
    """
    tz = ZoneInfo(timezone)
    start = datetime.combine(report_date - timedelta(days=1), time.min, tz)
    end = datetime.combine(report_date + timedelta(days=2), time.min, tz) - timedelta(
        seconds=1
    )
    fmt = "%Y-%m-%dT%H:%M:%SZ"
    return (
        start.astimezone(ZoneInfo("UTC")).strftime(fmt),
        end.astimezone(ZoneInfo("UTC")).strftime(fmt),
    )


def on_local_date(
    transactions: Sequence[dict[str, Any]], report_date: date
) -> list[dict[str, Any]]:
    """Keep transactions whose local timestamp falls on the report date."""
    day = report_date.isoformat()
    return [
        t for t in transactions if str(t.get("transactionDateLocalTime") or "")[:10] == day
    ]


def _num(value: Any) -> float:
    return float(value or 0)


def _loyalty_from_discounts(discounts: Sequence[dict[str, Any]]) -> float:
    amount = 0.0
    for d in discounts:
        reason = str(d.get("discountReason") or d.get("discountName") or "").strip().upper()
        if reason.startswith(LOYALTY_PREFIXES) or reason == "LOYALTY APPLIED":
            amount += _num(d.get("amount"))
    return amount


def aggregate_transactions(transactions: Sequence[dict[str, Any]]) -> GlTotals:
    """Aggregate retail transactions of one store-day.

    Voids, return transactions and non-retail transactions are skipped.
    Returned items are excluded from their original sale. Loyalty comes
    from loyaltySpent, or from loyalty-named discounts; in the latter
    case discounts are reported in full alongside loyalty.
    """
    totals = GlTotals()
    raw_debit = 0.0
    electronic_debit = 0.0
    prepaid_debit = 0.0
    unpaid_due = 0.0

    for t in transactions:
        if t.get("isVoid") or t.get("isReturn"):
            continue
        if (t.get("transactionType") or "Retail") != "Retail":
            continue
        totals.transaction_count += 1

        items = t.get("items") or []
        subtotal = _num(t.get("subtotal"))
        item_level = bool(items) and subtotal != 0

        if item_level:
            total_discount = 0.0
            for item in items:
                if item.get("isReturned"):
                    continue
                price = _num(item.get("totalPrice"))
                totals.gross_sales += price
                if price > 0:
                    totals.cogs += _num(item.get("unitCost")) * _num(item.get("quantity"))
                total_discount += _num(item.get("totalDiscount"))
        else:
            # Zero-subtotal transactions are transfers; book the subtotal as is
            totals.gross_sales += subtotal
            total_discount = _num(t.get("totalDiscount"))

        loyalty = _num(t.get("loyaltySpent"))
        from_discounts = False
        if loyalty == 0 and t.get("discounts"):
            loyalty = _loyalty_from_discounts(t["discounts"])
            from_discounts = loyalty != 0

        totals.discounts += total_discount if from_discounts else total_discount - loyalty
        totals.loyalty_spent += loyalty
        totals.tax += _num(t.get("tax"))

        all_returned = bool(items) and all(item.get("isReturned") for item in items)

        cash = 0.0 if all_returned else _num(t.get("cashPaid"))
        change = 0.0 if all_returned else _num(t.get("changeDue"))
        debit = _num(t.get("debitPaid"))
        electronic = _num(t.get("electronicPaid"))
        prepayment = _num(t.get("prePaymentAmount"))

        totals.cash_paid += cash
        totals.change_due += change
        totals.credit_paid += _num(t.get("creditPaid"))
        totals.total_paid += _num(t.get("paid"))

        if cash > 0 and debit == 0 and electronic == 0:
            totals.cash_only_change_due += change

        raw_debit += debit
        electronic_debit += electronic

        if all_returned:
            continue
        if prepayment > 0:
            prepaid_debit += prepayment
        if cash == 0 and debit == 0 and electronic == 0 and prepayment == 0:
            due = (
                subtotal
                + _num(t.get("tax"))
                - _num(t.get("totalDiscount"))
                - _num(t.get("loyaltySpent"))
            )
            if due > 0:
                unpaid_due += due

    totals.net_cash = totals.cash_paid - totals.cash_only_change_due
    totals.debit_paid = raw_debit + electronic_debit + prepaid_debit + unpaid_due

    total_debits = (
        totals.discounts
        + totals.returns
        + totals.loyalty_spent
        + totals.net_cash
        + totals.debit_paid
        + totals.cogs
    )
    total_credits = totals.gross_sales + totals.tax + totals.cogs
    totals.overage = total_credits - total_debits
    return totals


def generate_gl_rows(
    branch: str, store_name: str, totals: GlTotals, ref_number: str
) -> list[GlRow]:
    """Build the journal rows of one store-day; debits equal credits."""
    rows = []
    for account in ACCOUNTS:
        debit = credit = 0.0
        if account.side == "balance":
            if totals.overage > 0:
                debit = totals.overage
            elif totals.overage < 0:
                credit = -totals.overage
        elif account.side == "debit":
            debit = getattr(totals, account.field)
        else:
            credit = getattr(totals, account.field)

        rows.append(
            GlRow(
                branch=branch,
                store_name=store_name,
                account=account.code,
                description=account.description,
                ref_number=ref_number,
                debit=round(debit, 2),
                credit=round(credit, 2),
                memo=f"{store_name} {ref_number}",
            )
        )
    return rows


def ref_number_for(report_date: date) -> str:
    return f"{report_date.isoformat()} DS"


class GlExportTask(PerLocationSyncTask):
    """Fetch and aggregate one store-day of transactions."""

    phase = SyncPhase.GL_EXPORT

    def __init__(self, pos_clients: LocationPosClientFactory, report_date: date) -> None:
        self._pos_clients = pos_clients
        self._report_date = report_date

    def _do_work(
        self, location: LocationConfig
    ) -> tuple[SyncCounts, tuple[GlTotals, list[GlRow]]]:
        from_utc, to_utc = fetch_window_utc(self._report_date, store_timezone(location))
        with self._pos_clients(location) as pos:
            fetched = pos.get_transactions(from_utc, to_utc)

        transactions = on_local_date(fetched, self._report_date)
        totals = aggregate_transactions(transactions)
        rows = generate_gl_rows(
            branch_code(location), location.name, totals, ref_number_for(self._report_date)
        )
        logger.info(
            f"{location.name}: {len(transactions)} transactions, "
            f"{totals.gross_sales:,.2f} gross sales"
        )
        counts = SyncCounts(
            items_processed=len(transactions),
            items_skipped=len(fetched) - len(transactions),
        )
        return counts, (totals, rows)


class GlExportService:
    """Build the GL journal of one day across all locations."""

    def __init__(
        self,
        locations: Sequence[LocationConfig],
        pos_clients: LocationPosClientFactory,
        runner: PhaseRunner,
    ) -> None:
        self._locations = list(locations)
        self._pos_clients = pos_clients
        self._runner = runner

    def export_for_date(self, report_date: date) -> GlExportResult:
        """Export every location; failed stores are listed, not fatal."""
        logger.info(f"GL export for {report_date.isoformat()}: {len(self._locations)} stores")
        summary = self._runner.run(GlExportTask(self._pos_clients, report_date), self._locations)

        result = GlExportResult(report_date=report_date)
        names = {loc.location_id: loc.name for loc in self._locations}
        for phase_result in summary.results:
            name = names.get(phase_result.location_id, phase_result.location_id)
            if not phase_result.success:
                result.failed_stores.append((name, phase_result.error or ""))
                continue
            totals, rows = phase_result.data
            result.rows.extend(rows)
            result.total_sales += totals.gross_sales
            result.store_count += 1

        logger.info(
            f"GL export complete: {result.store_count}/{len(self._locations)} stores, "
            f"{result.total_sales:,.2f} total sales"
        )
        for store, error in result.failed_stores:
            logger.warning(f"GL export failed for {store}: {error}")
        return result

    def export_yesterday(self, today: date | None = None) -> GlExportResult:
        today = today or date.today()
        return self.export_for_date(today - timedelta(days=1))
