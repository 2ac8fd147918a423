"""Cross-session consistency package."""

from ledgersync.sync.notifier import (
    KNOWN_KEYS,
    USER_ACCOUNTS,
    USER_PREFERENCES,
    USER_SWAPS,
    USER_TRANSACTIONS,
    ChangeEvent,
    ChangeNotifier,
)

__all__ = [
    "KNOWN_KEYS",
    "USER_ACCOUNTS",
    "USER_PREFERENCES",
    "USER_SWAPS",
    "USER_TRANSACTIONS",
    "ChangeEvent",
    "ChangeNotifier",
]
