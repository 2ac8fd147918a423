"""
Monthly Summaries

Groups transactions by calendar month. Totals stay per currency;
converting happens later, at display time, so nothing is rounded twice.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Iterable

from ledgersync.models.ledger import Transaction
from ledgersync.models.valuation import MonthlySummary, TransactionKind


MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


def month_key(transaction: Transaction) -> str:
    # Dates are calendar dates at midnight UTC; the key is stable across zones
    return f"{transaction.date.year:04d}-{transaction.date.month:02d}"


def month_label(key: str) -> str:
    year, month = key.split("-")
    return f"{MONTH_NAMES[int(month) - 1]} {int(year)}"


def _matches(transaction: Transaction, kind: TransactionKind) -> bool:
    if kind == TransactionKind.INCOME:
        return transaction.is_inflow
    if kind == TransactionKind.EXPENSE:
        return transaction.is_outflow
    return True


def monthly_summary(
    transactions: Iterable[Transaction],
    kind: TransactionKind = TransactionKind.ALL,
) -> list[MonthlySummary]:
    """
    Per-month transaction counts and per-currency totals, newest first.

    Args:
        transactions: Fetched transactions
        kind: Keep all, only income (amount > 0) or only expenses (amount < 0)
    """
    kind = TransactionKind(kind)
    counts: dict[str, int] = defaultdict(int)
    totals: dict[str, dict[str, Decimal]] = defaultdict(lambda: defaultdict(Decimal))

    for transaction in transactions:
        if not _matches(transaction, kind):
            continue
        key = month_key(transaction)
        counts[key] += 1
        totals[key][transaction.transaction_currency] += transaction.amount

    return [
        MonthlySummary(
            month_key=key,
            label=month_label(key),
            transaction_count=counts[key],
            total_amount_by_currency=dict(totals[key]),
        )
        for key in sorted(counts, reverse=True)
    ]
