"""Aggregation layer: pure derived views over fetched collections."""

from ledgersync.aggregation.breakdown import (
    OTHERS,
    UNGROUPED,
    CategoryResolver,
    category_breakdown,
    group_breakdown,
)
from ledgersync.aggregation.summaries import monthly_summary
from ledgersync.aggregation.totals import (
    CRYPTO_ASSETS,
    TRADITIONAL_ASSETS,
    display_amount,
    net_worth_composition,
    total_balance,
)

__all__ = [
    "CRYPTO_ASSETS",
    "OTHERS",
    "TRADITIONAL_ASSETS",
    "UNGROUPED",
    "CategoryResolver",
    "category_breakdown",
    "display_amount",
    "group_breakdown",
    "monthly_summary",
    "net_worth_composition",
    "total_balance",
]
