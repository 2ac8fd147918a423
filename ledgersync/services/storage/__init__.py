"""
Storage Services Package

Provides the abstract remote-store interface and concrete implementations.
Google Sheets is the production backend; the in-memory store serves tests
and unconfigured local runs. Designed to be swappable.
"""

from ledgersync.services.storage.interface import (
    SERVER_TIMESTAMP,
    PushKeyGenerator,
    RemoteStore,
    StorageError,
    StoreUnavailable,
    join_path,
    split_path,
)
from ledgersync.services.storage.memory import InMemoryRemoteStore
from ledgersync.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsRemoteStore,
)

__all__ = [
    # Interface
    "RemoteStore",
    "SERVER_TIMESTAMP",
    "PushKeyGenerator",
    "join_path",
    "split_path",
    # Exceptions
    "StorageError",
    "StoreUnavailable",
    # Implementations
    "InMemoryRemoteStore",
    "GoogleSheetsClient",
    "GoogleSheetsRemoteStore",
]
