"""
Change Notification Channel

A plain publish/subscribe interface. Repositories publish after every
successful write; the consistency observer (or anything else) subscribes
and reacts. Nothing here is tied to a particular platform's storage
event mechanism.

Subscriber failures are logged and the remaining subscribers still run.
The write that triggered the event has already succeeded, so a broken
listener must not turn it into an error for the writer.
"""

import inspect
from typing import Awaitable, Callable, Optional, Union

from pydantic import BaseModel, Field

from ledgersync.audit import AuditLogger


# Well-known change keys, one per collection
USER_ACCOUNTS = "userAccounts"
USER_TRANSACTIONS = "userTransactions"
USER_SWAPS = "userSwaps"
USER_PREFERENCES = "userPreferences"

KEY_BY_COLLECTION = {
    "accounts": USER_ACCOUNTS,
    "transactions": USER_TRANSACTIONS,
    "swaps": USER_SWAPS,
    "preferences": USER_PREFERENCES,
}

KNOWN_KEYS = frozenset(KEY_BY_COLLECTION.values())


class ChangeEvent(BaseModel):
    """A collection of one user changed."""

    key: str = Field(..., description="Well-known key, e.g. userAccounts")
    user_id: str
    collection: str = Field(..., description="Collection name under users/{userId}")

    @classmethod
    def for_collection(cls, user_id: str, collection: str) -> "ChangeEvent":
        return cls(key=KEY_BY_COLLECTION[collection], user_id=user_id, collection=collection)


ChangeHandler = Callable[[ChangeEvent], Union[Awaitable[None], None]]


class ChangeNotifier:
    """In-process pub/sub for change events."""

    def __init__(self, audit_logger: Optional[AuditLogger] = None):
        self._handlers: list[ChangeHandler] = []
        self._audit = audit_logger or AuditLogger()

    def subscribe(self, handler: ChangeHandler) -> None:
        if handler not in self._handlers:
            self._handlers.append(handler)

    def unsubscribe(self, handler: ChangeHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    async def publish(self, event: ChangeEvent) -> None:
        """Deliver `event` to every subscriber, in subscription order."""
        # Copy: a handler may unsubscribe itself while we iterate
        for handler in list(self._handlers):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self._audit.log_error(
                    error_type="ChangeHandlerFailed",
                    error_message=str(e),
                    details={"key": event.key, "user_id": event.user_id},
                )
