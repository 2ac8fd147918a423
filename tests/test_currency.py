"""Tests for currency conversion and formatting."""

import pytest
from decimal import Decimal
from typing import Optional

from ledgersync.config import CurrencySettings
from ledgersync.errors import ConversionRateUnavailable
from ledgersync.services.currency import (
    CurrencyConverter,
    RateSource,
    StaticRateSource,
    currency_symbol,
)


class CountingRateSource(RateSource):
    """Rate source that records every lookup."""

    def __init__(self, rates: dict[str, Decimal]):
        self._rates = rates
        self.lookups: list[str] = []

    def rate(self, currency: str) -> Optional[Decimal]:
        self.lookups.append(currency)
        return self._rates.get(currency.upper())

    def supported_currencies(self) -> list[str]:
        return list(self._rates)


class TestConvert:
    """Tests for CurrencyConverter.convert."""

    def test_same_currency_is_identity_without_lookup(self):
        """Test that equal codes skip the rate source entirely."""
        source = CountingRateSource({"USD": Decimal("5.30")})
        converter = CurrencyConverter(source)
        amount = Decimal("123.456789")

        assert converter.convert(amount, "USD", "usd") == amount
        assert source.lookups == []

    def test_identity_even_for_unknown_currency(self):
        """Test that a code with no rate still converts to itself."""
        converter = CurrencyConverter(CountingRateSource({}))
        assert converter.convert(Decimal("7"), "XYZ", "XYZ") == Decimal("7")

    def test_converts_through_base(self, converter):
        """Test cross rates through the base currency."""
        assert converter.convert(Decimal("100"), "USD", "BRL") == Decimal("530.00")
        assert converter.convert(Decimal("530"), "BRL", "USD") == Decimal("100")

    def test_cross_rate_is_not_rounded(self, converter):
        """Test that conversion keeps full precision."""
        result = converter.convert(Decimal("10"), "EUR", "USD")
        assert result.quantize(Decimal("0.0001")) == Decimal("10.7547")
        assert result != result.quantize(Decimal("0.01"))

    def test_missing_rate_fails_loudly(self, converter):
        """Test that an unknown currency raises instead of guessing."""
        with pytest.raises(ConversionRateUnavailable) as exc_info:
            converter.convert(Decimal("1"), "XYZ", "USD")
        assert exc_info.value.from_currency == "XYZ"
        assert exc_info.value.to_currency == "USD"

    def test_can_convert(self, converter):
        """Test the non-raising check."""
        assert converter.can_convert("USD", "EUR")
        assert converter.can_convert("XYZ", "xyz")
        assert not converter.can_convert("USD", "XYZ")


class TestFormat:
    """Tests for locale-aware formatting."""

    @pytest.mark.parametrize(
        "amount,currency,expected",
        [
            (Decimal("1234.56"), "BRL", "R$ 1.234,56"),
            (Decimal("1234.56"), "USD", "$1,234.56"),
            (Decimal("1234.56"), "EUR", "1.234,56 €"),
            (Decimal("1234.56"), "GBP", "£1,234.56"),
            (Decimal("1234.56"), "JPY", "JPY 1,234.56"),
            (Decimal("-1234.5"), "USD", "-$1,234.50"),
        ],
    )
    def test_native_formats(self, converter, amount, currency, expected):
        """Test each currency's rendering rules."""
        assert converter.format(amount, currency) == expected

    def test_rounding_is_half_up(self, converter):
        """Test presentation rounding."""
        assert converter.format(Decimal("2.675"), "USD") == "$2.68"
        assert converter.format(Decimal("2.665"), "USD") == "$2.67"

    def test_negative_amount_rounding_to_zero_has_no_sign(self, converter):
        """Test that -0.001 renders as zero."""
        assert converter.format(Decimal("-0.001"), "USD") == "$0.00"

    def test_crypto_precision(self, converter):
        """Test crypto amounts keep up to 8 digits, trimmed to at least 2."""
        assert converter.format(Decimal("0.00012345"), "BTC") == "0.00012345 BTC"
        assert converter.format(Decimal("1.5"), "BTC") == "1.50 BTC"
        assert converter.format(Decimal("2"), "btc") == "2.00 BTC"
        assert converter.format(Decimal("0.123456789"), "BTC") == "0.12345679 BTC"

    def test_converted_figure_is_marked_approximate(self, converter):
        """Test the approximate indicator on converted amounts."""
        assert converter.format(Decimal("100"), "USD", "BRL", convert=True) == "≈ R$ 530,00"

    def test_same_currency_with_convert_is_native(self, converter):
        """Test that nothing is marked approximate when nothing was converted."""
        assert converter.format(Decimal("5"), "USD", "USD", convert=True) == "$5.00"

    def test_convert_false_ignores_display_currency(self, converter):
        """Test native formatting when conversion is not requested."""
        assert converter.format(Decimal("5"), "USD", "BRL", convert=False) == "$5.00"

    def test_format_with_missing_rate_raises(self, converter):
        """Test that formatting never hides a missing rate."""
        with pytest.raises(ConversionRateUnavailable):
            converter.format(Decimal("5"), "XYZ", "BRL", convert=True)


class TestCurrencySymbol:
    """Tests for currency_symbol."""

    def test_known_symbols(self):
        assert currency_symbol("BRL") == "R$"
        assert currency_symbol("usd") == "$"
        assert currency_symbol("EUR") == "€"
        assert currency_symbol("GBP") == "£"

    def test_fallbacks(self):
        assert currency_symbol("BTC") == "BTC"
        assert currency_symbol("") == "¤"
        assert currency_symbol(None) == "¤"


class TestRateSources:
    """Tests for the static rate table."""

    def test_base_currency_always_priced(self):
        """Test that the base is added at 1 when missing."""
        source = StaticRateSource({"USD": Decimal("5")}, base_currency="brl")
        assert source.rate("BRL") == Decimal("1")
        assert source.rate("usd") == Decimal("5")
        assert source.rate("XYZ") is None

    def test_default_settings_table(self):
        """Test the default rates relative to BRL."""
        converter = CurrencyConverter.from_settings(CurrencySettings())
        assert set(converter.supported_currencies()) >= {"BRL", "USD", "EUR", "GBP"}
        assert converter.convert(Decimal("1"), "GBP", "BRL") == Decimal("6.50")
        assert converter.is_crypto("BTC")
        assert not converter.is_crypto("USD")

    def test_rates_from_environment(self, monkeypatch):
        """Test overriding the table through CURRENCY_RATES."""
        monkeypatch.setenv("CURRENCY_RATES", '{"brl": 1, "usd": "5.10"}')
        settings = CurrencySettings()
        assert settings.rates == {"BRL": Decimal("1"), "USD": Decimal("5.10")}

    def test_non_positive_rate_rejected(self):
        """Test rate validation."""
        with pytest.raises(ValueError):
            CurrencySettings(rates={"USD": Decimal("0")})
