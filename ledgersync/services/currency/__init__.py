"""Currency conversion services package."""

from ledgersync.services.currency.converter import (
    APPROXIMATE_INDICATOR,
    CurrencyConverter,
    currency_symbol,
)
from ledgersync.services.currency.rates import RateSource, StaticRateSource

__all__ = [
    "APPROXIMATE_INDICATOR",
    "CurrencyConverter",
    "RateSource",
    "StaticRateSource",
    "currency_symbol",
]
