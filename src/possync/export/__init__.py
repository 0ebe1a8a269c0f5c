"""Accounting exports and sales reporting."""

from possync.export.gl import (
    ACCOUNTS,
    GlExportResult,
    GlExportService,
    GlExportTask,
    GlRow,
    GlTotals,
    aggregate_transactions,
    branch_code,
    generate_gl_rows,
    store_timezone,
)
from possync.export.hourly import (
    HourlySalesService,
    HourlySalesTask,
    HourlyTotals,
    aggregate_hour,
    previous_hour_range,
)

__all__ = [
    "ACCOUNTS",
    "GlExportResult",
    "GlExportService",
    "GlExportTask",
    "GlRow",
    "GlTotals",
    "HourlySalesService",
    "HourlySalesTask",
    "HourlyTotals",
    "aggregate_hour",
    "aggregate_transactions",
    "branch_code",
    "generate_gl_rows",
    "previous_hour_range",
    "store_timezone",
]
