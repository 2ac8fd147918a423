"""
Category and Group Breakdowns

Spending (or income) per category, and per group of categories, in the
preferred currency.

RULES:
- A category that can't be resolved lands in "Others"; nothing is dropped
- Transfers are movements between the user's own accounts, not spending,
  so expense breakdowns skip the "Transfer" category
- Amounts are absolute values after conversion
- Unconvertible transactions are excluded and reported
"""

from collections import defaultdict
from decimal import Decimal
from typing import Iterable, Optional

from ledgersync.audit import AuditLogger
from ledgersync.aggregation.totals import exclusion
from ledgersync.errors import ConversionRateUnavailable
from ledgersync.models.ledger import Category, Group, Transaction
from ledgersync.models.valuation import Breakdown, BreakdownEntry, ExcludedAmount
from ledgersync.services.currency import CurrencyConverter


OTHERS = "Others"
UNGROUPED = "Ungrouped"
TRANSFER_CATEGORY = "Transfer"


class CategoryResolver:
    """
    Resolves a transaction's category text to a taxonomy entry.

    A transaction may carry either a category id or a category name.
    Without a taxonomy the text is taken as the name.
    """

    def __init__(self, categories: Optional[Iterable[Category]] = None):
        self._known = categories is not None
        self._by_id: dict[str, Category] = {}
        self._by_name: dict[str, Category] = {}
        for category in categories or []:
            self._by_id[category.id] = category
            self._by_name[category.name.strip().lower()] = category

    def find(self, value: str) -> Optional[Category]:
        return self._by_id.get(value) or self._by_name.get(value.strip().lower())

    def name(self, value: str) -> str:
        if not self._known:
            return value.strip() or OTHERS
        category = self.find(value)
        return category.name if category else OTHERS

    def identifiers(self, value: str) -> set[str]:
        """Every identifier a group might use for this category."""
        category = self.find(value)
        ids = {value}
        if category:
            ids.update({category.id, category.name})
        return ids


def _is_transfer(name: str) -> bool:
    return name.strip().lower() == TRANSFER_CATEGORY.lower()


def _sorted_entries(
    amounts: dict[str, Decimal],
    counts: dict[str, int],
    limit: Optional[int] = None,
) -> list[BreakdownEntry]:
    entries = [
        BreakdownEntry(name=name, amount=amount, transaction_count=counts[name])
        for name, amount in amounts.items()
    ]
    entries.sort(key=lambda e: (-e.amount, e.name))
    return entries[:limit] if limit is not None else entries


def _convert_abs(
    transaction: Transaction,
    target: str,
    converter: CurrencyConverter,
    excluded: list[ExcludedAmount],
    audit_logger: Optional[AuditLogger],
) -> Optional[Decimal]:
    try:
        return abs(converter.convert(transaction.amount, transaction.transaction_currency, target))
    except ConversionRateUnavailable as e:
        excluded.append(
            exclusion(
                "transaction",
                transaction.id,
                transaction.transaction_currency,
                transaction.amount,
                e,
                audit_logger,
            )
        )
        return None


def category_breakdown(
    transactions: Iterable[Transaction],
    preferred_currency: str,
    converter: CurrencyConverter,
    categories: Optional[Iterable[Category]] = None,
    expenses_only: bool = True,
    limit: Optional[int] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> Breakdown:
    """
    Converted totals per category, largest first.

    Args:
        transactions: Fetched transactions
        preferred_currency: Display currency
        converter: Conversion service
        categories: Taxonomy used to resolve ids and names
        expenses_only: Only outflows (amount < 0), skipping transfers;
            otherwise only inflows (amount > 0)
        limit: Keep only the top N categories
    """
    target = preferred_currency.upper()
    resolver = CategoryResolver(categories)
    amounts: dict[str, Decimal] = defaultdict(Decimal)
    counts: dict[str, int] = defaultdict(int)
    excluded: list[ExcludedAmount] = []

    for transaction in transactions:
        if expenses_only and not transaction.is_outflow:
            continue
        if not expenses_only and not transaction.is_inflow:
            continue

        name = resolver.name(transaction.category)
        if expenses_only and _is_transfer(name):
            continue

        converted = _convert_abs(transaction, target, converter, excluded, audit_logger)
        if converted is None:
            continue
        amounts[name] += converted
        counts[name] += 1

    return Breakdown(
        currency=target,
        entries=_sorted_entries(amounts, counts, limit),
        excluded=excluded,
    )


def group_breakdown(
    transactions: Iterable[Transaction],
    groups: Iterable[Group],
    preferred_currency: str,
    converter: CurrencyConverter,
    categories: Optional[Iterable[Category]] = None,
    expenses_only: bool = True,
    audit_logger: Optional[AuditLogger] = None,
) -> Breakdown:
    """
    Converted totals per group, largest first.

    A category that belongs to several groups counts towards each of
    them. Transactions whose category is in no group land in "Ungrouped".
    """
    target = preferred_currency.upper()
    resolver = CategoryResolver(categories)
    groups = list(groups)
    amounts: dict[str, Decimal] = defaultdict(Decimal)
    counts: dict[str, int] = defaultdict(int)
    excluded: list[ExcludedAmount] = []

    for transaction in transactions:
        if expenses_only and not transaction.is_outflow:
            continue
        if not expenses_only and not transaction.is_inflow:
            continue
        if expenses_only and _is_transfer(resolver.name(transaction.category)):
            continue

        converted = _convert_abs(transaction, target, converter, excluded, audit_logger)
        if converted is None:
            continue

        ids = resolver.identifiers(transaction.category)
        names = [g.name for g in groups if ids & set(g.category_ids)] or [UNGROUPED]
        for name in names:
            amounts[name] += converted
            counts[name] += 1

    return Breakdown(
        currency=target,
        entries=_sorted_entries(amounts, counts),
        excluded=excluded,
    )
