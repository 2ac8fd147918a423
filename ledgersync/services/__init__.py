"""Services package."""

from ledgersync.services.currency import (
    CurrencyConverter,
    RateSource,
    StaticRateSource,
    currency_symbol,
)
from ledgersync.services.storage import (
    SERVER_TIMESTAMP,
    GoogleSheetsClient,
    GoogleSheetsRemoteStore,
    InMemoryRemoteStore,
    RemoteStore,
    StorageError,
    StoreUnavailable,
)

__all__ = [
    # Currency services
    "CurrencyConverter",
    "RateSource",
    "StaticRateSource",
    "currency_symbol",
    # Storage services
    "GoogleSheetsClient",
    "GoogleSheetsRemoteStore",
    "InMemoryRemoteStore",
    "RemoteStore",
    "SERVER_TIMESTAMP",
    "StorageError",
    "StoreUnavailable",
]
