"""
Session Orchestrator for Ledger Sync

This module ties together all the components for one signed-in user:

    identity → repositories → remote store
                    ↓ (change events)
             consistency observer
                    ↓
    aggregation + currency conversion → DashboardSnapshot

DESIGN DECISION: The session enforces the boundaries:
- Every read and write goes through the identity guard
- Derived numbers are recomputed from fresh reads, never stored
- A total that had to leave amounts out says so (is_complete)
"""

import asyncio
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from ledgersync.aggregation import (
    category_breakdown,
    monthly_summary,
    net_worth_composition,
    total_balance,
)
from ledgersync.audit import AuditLogger, configure_logging, get_logger
from ledgersync.config import Settings, get_settings
from ledgersync.identity import IdentityProvider, StaticIdentity, require_user
from ledgersync.models.ledger import Category
from ledgersync.models.valuation import (
    BalanceTotal,
    Breakdown,
    MonthlySummary,
    NetWorthComposition,
)
from ledgersync.repositories import (
    AccountRepository,
    PreferencesRepository,
    SwapRepository,
    TransactionRepository,
)
from ledgersync.services.currency import CurrencyConverter
from ledgersync.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsRemoteStore,
    InMemoryRemoteStore,
    RemoteStore,
)
from ledgersync.sync.notifier import ChangeNotifier
from ledgersync.sync.observer import ConsistencyObserver


logger = get_logger(__name__)

DEFAULT_BREAKDOWN_LIMIT = 5


class DashboardSnapshot(BaseModel):
    """Everything the dashboard shows, computed from one round of reads."""

    preferred_currency: str
    total_balance: BalanceTotal
    monthly_summary: list[MonthlySummary] = Field(default_factory=list)
    expense_breakdown: Breakdown
    net_worth: NetWorthComposition
    account_count: int = 0
    transaction_count: int = 0
    swap_count: int = 0

    @property
    def is_complete(self) -> bool:
        return (
            self.total_balance.is_complete
            and self.expense_breakdown.is_complete
            and self.net_worth.is_complete
        )


class LedgerSession:
    """
    One user's view of the ledger.

    Holds the repositories, the change notifier and the consistency
    observer. Nothing here caches persisted state except the observer's
    view.
    """

    def __init__(
        self,
        identity: IdentityProvider,
        store: RemoteStore,
        converter: Optional[CurrencyConverter] = None,
        notifier: Optional[ChangeNotifier] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self._identity = identity
        self._store = store
        self._audit = audit_logger or AuditLogger()
        self._converter = converter or CurrencyConverter.from_settings(settings.currency)
        self._notifier = notifier or ChangeNotifier(self._audit)

        self.accounts = AccountRepository(store, identity, self._notifier, self._audit)
        self.transactions = TransactionRepository(store, identity, self._notifier, self._audit)
        self.swaps = SwapRepository(store, identity, self._notifier, self._audit)
        self.preferences = PreferencesRepository(
            store,
            identity,
            supported_currencies=self._converter.supported_currencies(),
            default_currency=settings.currency.default_preferred_currency,
            notifier=self._notifier,
            audit_logger=self._audit,
        )

        self.observer = ConsistencyObserver(
            self._notifier,
            identity,
            self.accounts,
            self.transactions,
            self.swaps,
            self.preferences,
            audit_logger=self._audit,
        )

    @property
    def identity(self) -> IdentityProvider:
        return self._identity

    @property
    def store(self) -> RemoteStore:
        return self._store

    @property
    def converter(self) -> CurrencyConverter:
        return self._converter

    @property
    def notifier(self) -> ChangeNotifier:
        return self._notifier

    async def start_observing(self) -> None:
        """Attach the observer and load its initial view."""
        self.observer.attach()
        await self.observer.refresh_all()

    def stop_observing(self) -> None:
        self.observer.detach()

    async def preferred_currency(self) -> str:
        prefs = await self.preferences.get()
        return prefs.preferred_currency

    async def snapshot(
        self,
        categories: Optional[Iterable[Category]] = None,
        breakdown_limit: Optional[int] = DEFAULT_BREAKDOWN_LIMIT,
    ) -> DashboardSnapshot:
        """
        Fetch and aggregate everything the dashboard needs.

        The three collections are read concurrently. There is no snapshot
        isolation: they may reflect slightly different instants.

        Raises:
            Unauthenticated: If nobody is signed in
            StoreUnavailable: If any read fails
        """
        user_id = require_user(self._identity)
        preferred = await self.preferred_currency()

        accounts, transactions, swaps = await asyncio.gather(
            self.accounts.list(),
            self.transactions.list(),
            self.swaps.list(),
        )

        snapshot = DashboardSnapshot(
            preferred_currency=preferred,
            total_balance=total_balance(accounts, preferred, self._converter, self._audit),
            monthly_summary=monthly_summary(transactions),
            expense_breakdown=category_breakdown(
                transactions,
                preferred,
                self._converter,
                categories=categories,
                limit=breakdown_limit,
                audit_logger=self._audit,
            ),
            net_worth=net_worth_composition(accounts, preferred, self._converter, self._audit),
            account_count=len(accounts),
            transaction_count=len(transactions),
            swap_count=len(swaps),
        )

        logger.info(
            "snapshot_computed",
            user_id=user_id,
            preferred_currency=preferred,
            is_complete=snapshot.is_complete,
        )
        return snapshot


def create_ledger_session(
    user_id: Optional[str],
    use_sheets: bool = True,
    settings: Optional[Settings] = None,
) -> LedgerSession:
    """
    Factory function to create a session for one user.

    Args:
        user_id: The signed-in user (None means nobody is signed in)
        use_sheets: Whether to back the session with Google Sheets.
                    Set to False for testing without storage.

    Returns:
        A LedgerSession
    """
    settings = settings or get_settings()
    configure_logging(settings.app.log_level)
    audit_logger = AuditLogger()

    store: RemoteStore
    if use_sheets:
        try:
            store = GoogleSheetsRemoteStore(GoogleSheetsClient(settings.google_sheets))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("sheets_store_unavailable", error=str(e))
            store = InMemoryRemoteStore()
    else:
        store = InMemoryRemoteStore()

    return LedgerSession(
        StaticIdentity(user_id),
        store,
        audit_logger=audit_logger,
        settings=settings,
    )
