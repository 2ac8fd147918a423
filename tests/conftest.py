"""Shared fixtures: an in-memory store, a signed-in user and a converter."""

from decimal import Decimal

import pytest

from ledgersync.config import get_settings
from ledgersync.identity import StaticIdentity
from ledgersync.services.currency import CurrencyConverter, StaticRateSource
from ledgersync.services.storage import InMemoryRemoteStore
from ledgersync.sync import ChangeNotifier


USER_ID = "user-1"

RATES = {
    "BRL": Decimal("1"),
    "USD": Decimal("5.30"),
    "EUR": Decimal("5.70"),
    "GBP": Decimal("6.50"),
    "BTC": Decimal("350000"),
}


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch: pytest.MonkeyPatch):
    """Settings come from defaults, not from the developer's environment."""
    for name in ("CURRENCY_RATES", "CURRENCY_BASE_CURRENCY", "CURRENCY_DEFAULT_PREFERRED_CURRENCY"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def store() -> InMemoryRemoteStore:
    return InMemoryRemoteStore()


@pytest.fixture
def identity() -> StaticIdentity:
    return StaticIdentity(USER_ID)


@pytest.fixture
def notifier() -> ChangeNotifier:
    return ChangeNotifier()


@pytest.fixture
def converter() -> CurrencyConverter:
    return CurrencyConverter(
        StaticRateSource(RATES, base_currency="BRL"),
        crypto_tickers={"BTC", "ETH"},
    )
