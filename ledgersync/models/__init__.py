"""
Data Models Package

This package contains all Pydantic models used in Ledger Sync.
All data read from or written to the remote store must conform to these schemas.
"""

from ledgersync.models.ledger import (
    Account,
    AccountCategory,
    AccountType,
    Category,
    EntityTimestamp,
    Group,
    NewAccount,
    NewSwap,
    NewTransaction,
    Swap,
    TimestampState,
    Transaction,
    UserPreferences,
)
from ledgersync.models.valuation import (
    BalanceTotal,
    Breakdown,
    BreakdownEntry,
    CompositionSlice,
    ExcludedAmount,
    MonthlySummary,
    NetWorthComposition,
    TransactionKind,
)
from ledgersync.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Account",
    "AccountCategory",
    "AccountType",
    "Category",
    "EntityTimestamp",
    "Group",
    "NewAccount",
    "NewSwap",
    "NewTransaction",
    "Swap",
    "TimestampState",
    "Transaction",
    "UserPreferences",
    # Valuation models
    "BalanceTotal",
    "Breakdown",
    "BreakdownEntry",
    "CompositionSlice",
    "ExcludedAmount",
    "MonthlySummary",
    "NetWorthComposition",
    "TransactionKind",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
