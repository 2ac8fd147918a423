"""
Balance Totals

DESIGN DECISION: Totals are computed, never stored.
Every function here is a pure pass over already-fetched accounts and is
safe to call on every render.

An account whose currency has no known rate is left OUT of the sum and
reported in `excluded`. It is never added as zero and never added
unconverted.
"""

from decimal import Decimal
from typing import Iterable, Optional

from ledgersync.audit import AuditLogger
from ledgersync.errors import ConversionRateUnavailable
from ledgersync.models.ledger import Account, AccountCategory
from ledgersync.models.valuation import (
    BalanceTotal,
    CompositionSlice,
    ExcludedAmount,
    NetWorthComposition,
)
from ledgersync.services.currency import CurrencyConverter


TRADITIONAL_ASSETS = "Traditional Assets"
CRYPTO_ASSETS = "Crypto Assets"

NOT_CONVERTED_NOTE = "(not converted)"


def exclusion(
    entity_type: str,
    entity_id: str,
    currency: str,
    amount: Decimal,
    error: ConversionRateUnavailable,
    audit_logger: Optional[AuditLogger] = None,
) -> ExcludedAmount:
    """Record (and log) an amount that could not be converted."""
    if audit_logger is not None:
        audit_logger.log_conversion_unavailable(
            entity_type, entity_id, error.from_currency, error.to_currency
        )
    return ExcludedAmount(
        entity_type=entity_type,
        entity_id=entity_id,
        currency=currency,
        amount=amount,
        reason=str(error),
    )


def total_balance(
    accounts: Iterable[Account],
    preferred_currency: str,
    converter: CurrencyConverter,
    audit_logger: Optional[AuditLogger] = None,
) -> BalanceTotal:
    """
    Sum every account balance in the preferred currency.

    Args:
        accounts: Fetched accounts
        preferred_currency: Display currency
        converter: Conversion service

    Returns:
        BalanceTotal; `is_complete` is False if any account was excluded
    """
    target = preferred_currency.upper()
    result = BalanceTotal(currency=target)

    for account in accounts:
        try:
            converted = converter.convert(account.balance, account.currency, target)
        except ConversionRateUnavailable as e:
            result.excluded.append(
                exclusion("account", account.id, account.currency, account.balance, e, audit_logger)
            )
            continue
        result.amount += converted
        result.included_count += 1

    return result


def net_worth_composition(
    accounts: Iterable[Account],
    preferred_currency: str,
    converter: CurrencyConverter,
    audit_logger: Optional[AuditLogger] = None,
) -> NetWorthComposition:
    """
    Split positive holdings into traditional and crypto assets.

    Only accounts flagged `include_in_net_worth` with a positive balance
    count. Empty slices are omitted.
    """
    target = preferred_currency.upper()
    buckets = {TRADITIONAL_ASSETS: Decimal("0"), CRYPTO_ASSETS: Decimal("0")}
    excluded: list[ExcludedAmount] = []

    for account in accounts:
        if not account.include_in_net_worth or account.balance <= 0:
            continue
        try:
            converted = converter.convert(account.balance, account.currency, target)
        except ConversionRateUnavailable as e:
            excluded.append(
                exclusion("account", account.id, account.currency, account.balance, e, audit_logger)
            )
            continue

        name = CRYPTO_ASSETS if account.category == AccountCategory.CRYPTO else TRADITIONAL_ASSETS
        buckets[name] += converted

    return NetWorthComposition(
        currency=target,
        slices=[CompositionSlice(name=n, amount=a) for n, a in buckets.items() if a > 0],
        excluded=excluded,
    )


def display_amount(
    amount: Decimal,
    currency: str,
    display_currency: str,
    converter: CurrencyConverter,
) -> str:
    """
    Amount formatted in the display currency, marked approximate.

    Falls back to the native amount annotated "(not converted)" when no
    rate is known, so the user can tell it was not converted.
    """
    try:
        return converter.format(amount, currency, display_currency, convert=True)
    except ConversionRateUnavailable:
        return f"{converter.format_native(amount, currency)} {NOT_CONVERTED_NOTE}"
