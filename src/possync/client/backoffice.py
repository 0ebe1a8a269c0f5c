"""Backoffice report operations.

This module provides:
- PaymentSummary: Payment totals derived from a closing report
- BackofficeClient: Closing-report access and derived payment totals
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

from possync.client.api import ResilientApiClient
from possync.client.errors import DataError
from possync.client.payload import get_field

logger = logging.getLogger(__name__)

CLOSING_REPORT_PATH = "/api/posv3/reports/closing-report"


def _amount(value: Any) -> float:
    if value in (None, ""):
        return 0.0
    return float(value)


def format_report_date(day: date) -> str:
    """Format a date the way the closing-report endpoint expects."""
    return f"{day:%m/%d/%Y} 12:00 am"


@dataclass
class PaymentSummary:
    """Payment totals for one location and day."""

    prepaid_sales: float
    paid_in_cash: float
    paid_in_debit: float
    electronic_paid: float
    total_invoice: float
    net_sales: float


class BackofficeClient:
    """Closing-report access for the backoffice account."""

    def __init__(self, api: ResilientApiClient) -> None:
        """Initialize with a resilient API client."""
        self._api = api

    def fetch_closing_report(self, loc_id: int, report_date: date) -> dict[str, Any]:
        """Fetch the closing report of one location for one day.

        Args:
            loc_id: Backoffice location id.
            report_date: Business day to report.

        Returns:
            The "Data" object of the report, or an empty dict if the
            report was not produced.
        """
        result = self._api.call(
            CLOSING_REPORT_PATH,
            {
                "Date": format_report_date(report_date),
                "EndDate": format_report_date(report_date + timedelta(days=1)),
                "IncludeDetail": False,
                "LocId": loc_id,
            },
        )
        if not get_field(result, "Result"):
            logger.warning(f"Closing report for locId {loc_id} on {report_date} returned no result")
            return {}
        data = get_field(result, "Data")
        if not isinstance(data, dict):
            raise DataError(f"Malformed closing report for locId {loc_id}", 200)
        return data

    @staticmethod
    def prepaid_from_report(data: dict[str, Any]) -> float:
        """Sum the prepaid sales of every register in a report."""
        registers = get_field(data, "Registers") or []
        return float(sum(_amount(get_field(reg, "Prepaid Sales")) for reg in registers))

    @staticmethod
    def overview_from_report(data: dict[str, Any]) -> dict[str, Any]:
        """Get the first overview row of a report."""
        overview = get_field(data, "Overview") or []
        return overview[0] if overview and isinstance(overview[0], dict) else {}

    def get_prepaid_sales(self, loc_id: int, report_date: date) -> float:
        """Get the prepaid sales total of a location for one day."""
        return self.prepaid_from_report(self.fetch_closing_report(loc_id, report_date))

    def get_electronic_paid(self, loc_id: int, report_date: date) -> float:
        """Get the electronic payment total of a location for one day."""
        data = self.fetch_closing_report(loc_id, report_date)
        return _amount(get_field(self.overview_from_report(data), "ElectronicPaid"))

    def get_payment_summary(self, loc_id: int, report_date: date) -> PaymentSummary | None:
        """Get all payment totals of a location for one day.

        Returns:
            The summary, or None if the backoffice produced no report.
        """
        data = self.fetch_closing_report(loc_id, report_date)
        if not data:
            return None
        overview = self.overview_from_report(data)
        return PaymentSummary(
            prepaid_sales=self.prepaid_from_report(data),
            paid_in_cash=_amount(get_field(overview, "PaidInCash")),
            paid_in_debit=_amount(get_field(overview, "PaidInDebit")),
            electronic_paid=_amount(get_field(overview, "ElectronicPaid")),
            total_invoice=_amount(get_field(overview, "TotalInvoice")),
            net_sales=_amount(get_field(overview, "NetSales")),
        )
