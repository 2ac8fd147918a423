"""
Exchange Rate Sources

The converter never knows where rates come from. It asks a RateSource
for the value of one unit of a currency expressed in a base currency,
and gets None back when the source has no idea.

How rates are fetched and cached (an API, a nightly job) is outside
this package; StaticRateSource serves the table from settings.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Mapping, Optional

from ledgersync.config import CurrencySettings


class RateSource(ABC):
    """Abstract rate lookup capability."""

    @abstractmethod
    def rate(self, currency: str) -> Optional[Decimal]:
        """
        Value of one unit of `currency` in the base currency.

        Returns:
            The rate, or None if the currency is unknown
        """
        pass

    @abstractmethod
    def supported_currencies(self) -> list[str]:
        """Currency codes this source can price."""
        pass


class StaticRateSource(RateSource):
    """Fixed rate table, e.g. {"BRL": 1, "USD": 5.30}."""

    def __init__(self, rates: Mapping[str, Decimal], base_currency: str = "BRL"):
        self._rates = {code.upper(): Decimal(str(rate)) for code, rate in rates.items()}
        self.base_currency = base_currency.upper()
        # The base is always priced at exactly one
        self._rates.setdefault(self.base_currency, Decimal("1"))

    @classmethod
    def from_settings(cls, settings: CurrencySettings) -> "StaticRateSource":
        return cls(settings.rates, base_currency=settings.base_currency)

    def rate(self, currency: str) -> Optional[Decimal]:
        return self._rates.get(currency.upper())

    def supported_currencies(self) -> list[str]:
        return list(self._rates)
