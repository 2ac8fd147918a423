"""
Cross-Session Consistency Observer

Push-to-pull bridge: a change event for the signed-in user triggers a
re-read of the matching collection. The observer NEVER writes.

    userAccounts      → accounts.list()
    userTransactions  → transactions.list()
    userSwaps         → swaps.list()
    userPreferences   → preferences (preferred display currency)

FAILURE POLICY:
A failed re-read is logged and the previous view stays in place. This is
the one place in the core where an error is recovered locally.

STALE RESPONSES:
Each refresh of a key takes a generation number. If a newer refresh of
the same key started while an older one was still in flight, the older
result is discarded when it finally arrives.
"""

from typing import Awaitable, Callable, Optional

from pydantic import BaseModel, Field

from ledgersync.audit import AuditLogger
from ledgersync.errors import Unauthenticated
from ledgersync.identity import IdentityProvider, require_user
from ledgersync.models.ledger import Account, Swap, Transaction
from ledgersync.repositories import (
    AccountRepository,
    PreferencesRepository,
    SwapRepository,
    TransactionRepository,
)
from ledgersync.sync.notifier import (
    KNOWN_KEYS,
    USER_ACCOUNTS,
    USER_PREFERENCES,
    USER_SWAPS,
    USER_TRANSACTIONS,
    ChangeEvent,
    ChangeNotifier,
)


class LedgerView(BaseModel):
    """Cached copies of one user's collections."""

    accounts: list[Account] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    swaps: list[Swap] = Field(default_factory=list)
    preferred_currency: Optional[str] = None


class ConsistencyObserver:
    """Keeps a LedgerView in line with the store as change events arrive."""

    def __init__(
        self,
        notifier: ChangeNotifier,
        identity: IdentityProvider,
        accounts: AccountRepository,
        transactions: TransactionRepository,
        swaps: SwapRepository,
        preferences: PreferencesRepository,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._notifier = notifier
        self._identity = identity
        self._audit = audit_logger or AuditLogger()
        self._generations: dict[str, int] = {}
        self._attached = False

        self.view = LedgerView()

        self._loaders: dict[str, tuple[str, Callable[[], Awaitable]]] = {
            USER_ACCOUNTS: ("accounts", accounts.list),
            USER_TRANSACTIONS: ("transactions", transactions.list),
            USER_SWAPS: ("swaps", swaps.list),
            USER_PREFERENCES: ("preferred_currency", self._load_preferred_currency(preferences)),
        }

    @staticmethod
    def _load_preferred_currency(preferences: PreferencesRepository):
        async def load() -> str:
            prefs = await preferences.get(create_missing=False)
            return prefs.preferred_currency
        return load

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def attach(self) -> None:
        if not self._attached:
            self._notifier.subscribe(self.handle)
            self._attached = True

    def detach(self) -> None:
        if self._attached:
            self._notifier.unsubscribe(self.handle)
            self._attached = False

    @property
    def is_attached(self) -> bool:
        return self._attached

    # -------------------------------------------------------------------------
    # Refresh
    # -------------------------------------------------------------------------

    async def handle(self, event: ChangeEvent) -> None:
        """Notifier callback. Ignores other users and unknown keys."""
        try:
            user_id = require_user(self._identity)
        except Unauthenticated:
            return
        if event.user_id != user_id:
            return
        if event.key not in KNOWN_KEYS:
            return
        await self.refresh(event.key)

    async def refresh(self, key: str) -> bool:
        """
        Re-read the collection behind `key` into the view.

        Returns True if the view was updated.
        """
        attribute, load = self._loaders[key]
        generation = self._generations.get(key, 0) + 1
        self._generations[key] = generation
        user_id = (self._identity.current_user() or "").strip()

        try:
            result = await load()
        except Exception as e:
            self._audit.log_refresh_failed(user_id, key, str(e))
            return False

        if self._generations[key] != generation:
            self._audit.log_stale_response(user_id, key, generation)
            return False

        setattr(self.view, attribute, result)
        count = len(result) if isinstance(result, list) else 1
        self._audit.log_refresh_completed(user_id, key, count)
        return True

    async def refresh_all(self) -> bool:
        """Re-read everything; True only if every refresh was applied."""
        results = [await self.refresh(key) for key in self._loaders]
        return all(results)
