"""
Preferences Repository

A single record per user at users/{userId}/preferences.

RULES:
- Reading a missing record writes the defaults and returns them
- A preferred currency the rate source can't price falls back to the
  configured default, so the dashboard always has something to convert to
"""

from typing import Optional

from pydantic import ValidationError

from ledgersync.audit import AuditLogger
from ledgersync.identity import IdentityProvider, require_user
from ledgersync.models.ledger import UserPreferences
from ledgersync.services.storage import RemoteStore, StoreUnavailable
from ledgersync.services.storage.interface import join_path
from ledgersync.sync.notifier import ChangeEvent, ChangeNotifier


class PreferencesRepository:
    """Read and write the user's display preferences."""

    collection = "preferences"

    def __init__(
        self,
        store: RemoteStore,
        identity: IdentityProvider,
        supported_currencies: Optional[list[str]] = None,
        default_currency: str = "BRL",
        notifier: Optional[ChangeNotifier] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._identity = identity
        self._supported = {c.upper() for c in (supported_currencies or [])}
        self._default_currency = default_currency.upper()
        self._notifier = notifier
        self._audit = audit_logger or AuditLogger()

    def path(self, user_id: str) -> str:
        return join_path("users", user_id, self.collection)

    def defaults(self) -> UserPreferences:
        return UserPreferences(preferred_currency=self._default_currency)

    def _sanitize(self, prefs: UserPreferences) -> UserPreferences:
        if self._supported and prefs.preferred_currency not in self._supported:
            return prefs.model_copy(update={"preferred_currency": self._default_currency})
        return prefs

    async def get(self, create_missing: bool = True) -> UserPreferences:
        """
        The stored preferences.

        A missing record is written with the defaults unless
        `create_missing` is False, in which case the defaults are only
        returned.
        """
        user_id = require_user(self._identity)
        path = self.path(user_id)
        try:
            raw = await self._store.get(path)
        except StoreUnavailable as e:
            self._audit.log_store_error("read", path, str(e), user_id=user_id)
            raise

        if raw is None:
            if not create_missing:
                return self.defaults()
            return await self.save(self.defaults())

        try:
            prefs = UserPreferences.model_validate(raw)
        except ValidationError as e:
            self._audit.log_record_skipped(user_id, "preferences", self.collection, str(e))
            return self.defaults()
        return self._sanitize(prefs)

    async def save(self, prefs: UserPreferences) -> UserPreferences:
        """Replace the stored preferences."""
        user_id = require_user(self._identity)
        prefs = self._sanitize(prefs)
        path = self.path(user_id)
        try:
            await self._store.set(path, prefs.to_payload())
        except StoreUnavailable as e:
            self._audit.log_store_error("write", path, str(e), user_id=user_id)
            raise

        self._audit.log_preferences_saved(user_id, prefs.preferred_currency)
        if self._notifier is not None:
            await self._notifier.publish(ChangeEvent.for_collection(user_id, self.collection))
        return prefs

    async def update(self, **changes) -> UserPreferences:
        """Change individual fields, e.g. update(preferred_currency="USD")."""
        current = await self.get()
        return await self.save(UserPreferences.model_validate({**current.model_dump(), **changes}))
