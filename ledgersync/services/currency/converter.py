"""
Currency Conversion Service

Pure conversion and formatting. No I/O.

RULES:
1. Same currency in and out → the amount comes back untouched and the
   rate source is never consulted
2. Missing rate → ConversionRateUnavailable. We NEVER fall back to the
   unconverted number pretending it is converted
3. No rounding during conversion; rounding happens only in format()
4. A converted figure is always marked as approximate (≈)
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import NamedTuple, Optional, Union

from ledgersync.config import CurrencySettings
from ledgersync.errors import ConversionRateUnavailable
from ledgersync.services.currency.rates import RateSource, StaticRateSource


Amount = Union[Decimal, int, float, str]

APPROXIMATE_INDICATOR = "≈"


class FormatRule(NamedTuple):
    """How a currency is rendered."""
    symbol: str
    thousands: str
    decimal: str
    pattern: str  # uses {sign}, {symbol}, {number}


FORMAT_RULES: dict[str, FormatRule] = {
    "BRL": FormatRule("R$", ".", ",", "{sign}{symbol} {number}"),   # pt-BR
    "USD": FormatRule("$", ",", ".", "{sign}{symbol}{number}"),     # en-US
    "EUR": FormatRule("€", ".", ",", "{sign}{number} {symbol}"),    # de-DE
    "GBP": FormatRule("£", ",", ".", "{sign}{symbol}{number}"),     # en-GB
}


def currency_symbol(currency: Optional[str]) -> str:
    """
    Symbol for a currency code.

    Falls back to the code itself, or the generic sign ¤ for blank input.
    """
    if not currency or not str(currency).strip():
        return "¤"
    code = str(currency).strip().upper()
    rule = FORMAT_RULES.get(code)
    return rule.symbol if rule else code


def as_decimal(amount: Amount) -> Decimal:
    if isinstance(amount, Decimal):
        value = amount
    elif isinstance(amount, float):
        value = Decimal(str(amount))
    else:
        value = Decimal(amount)
    if not value.is_finite():
        raise ValueError(f"Amount must be finite, got {amount!r}")
    return value


class CurrencyConverter:
    """
    Converts and formats monetary amounts.

    Rates are relative to a common base: converting A → B is
    amount * rate(A) / rate(B).
    """

    def __init__(
        self,
        rate_source: RateSource,
        fiat_fraction_digits: int = 2,
        crypto_fraction_digits: int = 8,
        crypto_tickers: Optional[set[str]] = None,
    ):
        self._rates = rate_source
        self._fiat_digits = fiat_fraction_digits
        self._crypto_digits = crypto_fraction_digits
        self._crypto = {t.upper() for t in (crypto_tickers or set())}

    @classmethod
    def from_settings(cls, settings: CurrencySettings) -> "CurrencyConverter":
        return cls(
            StaticRateSource.from_settings(settings),
            fiat_fraction_digits=settings.fiat_fraction_digits,
            crypto_fraction_digits=settings.crypto_fraction_digits,
            crypto_tickers=settings.crypto_tickers_set,
        )

    def supported_currencies(self) -> list[str]:
        return self._rates.supported_currencies()

    def is_crypto(self, currency: str) -> bool:
        return currency.upper() in self._crypto

    # -------------------------------------------------------------------------
    # Conversion
    # -------------------------------------------------------------------------

    def can_convert(self, from_currency: str, to_currency: str) -> bool:
        if from_currency.upper() == to_currency.upper():
            return True
        return (
            self._rates.rate(from_currency) is not None
            and self._rates.rate(to_currency) is not None
        )

    def convert(self, amount: Amount, from_currency: str, to_currency: str) -> Decimal:
        """
        Convert `amount` from one currency to another.

        Raises:
            ConversionRateUnavailable: If either currency has no rate
        """
        value = as_decimal(amount)
        source = from_currency.strip().upper()
        target = to_currency.strip().upper()

        if source == target:
            return value

        source_rate = self._rates.rate(source)
        target_rate = self._rates.rate(target)
        if source_rate is None or target_rate is None:
            raise ConversionRateUnavailable(source, target)

        return value * source_rate / target_rate

    # -------------------------------------------------------------------------
    # Formatting
    # -------------------------------------------------------------------------

    def _fraction_digits(self, currency: str, value: Decimal) -> tuple[Decimal, int]:
        """Round for display and decide how many digits to show."""
        if not self.is_crypto(currency):
            quantum = Decimal(1).scaleb(-self._fiat_digits)
            return value.quantize(quantum, rounding=ROUND_HALF_UP), self._fiat_digits

        quantum = Decimal(1).scaleb(-self._crypto_digits)
        rounded = value.quantize(quantum, rounding=ROUND_HALF_UP)
        exponent = rounded.normalize().as_tuple().exponent
        digits = max(2, -exponent) if isinstance(exponent, int) and exponent < 0 else 2
        return rounded, min(digits, self._crypto_digits)

    def format_native(self, amount: Amount, currency: str) -> str:
        """Format an amount in its own currency (no conversion)."""
        code = currency.strip().upper()
        value = as_decimal(amount)
        rounded, digits = self._fraction_digits(code, value)

        number = f"{rounded.copy_abs():,.{digits}f}"
        sign = "-" if rounded < 0 else ""

        rule = FORMAT_RULES.get(code)
        if rule is None:
            rule = (
                FormatRule(code, ",", ".", "{sign}{number} {symbol}")
                if self.is_crypto(code)
                else FormatRule(code, ",", ".", "{sign}{symbol} {number}")
            )
        # Swap separators through a placeholder so they can't collide
        number = (
            number.replace(",", "\0")
            .replace(".", rule.decimal)
            .replace("\0", rule.thousands)
        )
        return rule.pattern.format(sign=sign, symbol=rule.symbol, number=number)

    def format(
        self,
        amount: Amount,
        currency: str,
        display_currency: Optional[str] = None,
        convert: bool = False,
    ) -> str:
        """
        Format an amount for display.

        Args:
            amount: The amount in `currency`
            currency: The amount's own currency
            display_currency: Target currency when converting
            convert: Convert into `display_currency` first

        Raises:
            ConversionRateUnavailable: If converting and no rate is known
        """
        if not convert or not display_currency:
            return self.format_native(amount, currency)

        if currency.strip().upper() == display_currency.strip().upper():
            return self.format_native(amount, currency)

        converted = self.convert(amount, currency, display_currency)
        return f"{APPROXIMATE_INDICATOR} {self.format_native(converted, display_currency)}"
