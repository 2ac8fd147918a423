"""Entity repositories package."""

from ledgersync.repositories.accounts import AccountRepository
from ledgersync.repositories.base import EntityRepository
from ledgersync.repositories.preferences import PreferencesRepository
from ledgersync.repositories.swaps import SwapRepository, build_swap_legs
from ledgersync.repositories.transactions import TransactionRepository

__all__ = [
    "AccountRepository",
    "EntityRepository",
    "PreferencesRepository",
    "SwapRepository",
    "TransactionRepository",
    "build_swap_legs",
]
