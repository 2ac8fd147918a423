"""
Entity Repository Base

DESIGN DECISION: One generic repository, one subclass per collection.
Every collection behaves the same way:

    users/{userId}/{collection}/{id}  →  flat camelCase payload

RULES (every operation):
1. Resolve the user through the IdentityProvider FIRST. No identity
   means Unauthenticated and nothing reaches the store.
2. Store failures propagate. Repositories never retry; retrying is the
   transport's job.
3. The store owns persisted state. Objects returned here are copies.
4. createdAt is written once, by add(). update() never sends it.
"""

from typing import Any, ClassVar, Generic, Optional, TypeVar, Union

from pydantic import ValidationError

from ledgersync.audit import AuditLogger
from ledgersync.errors import MissingIdentifier
from ledgersync.identity import IdentityProvider, require_user
from ledgersync.models.ledger import EntityTimestamp, LedgerModel, PersistedMixin
from ledgersync.services.storage import SERVER_TIMESTAMP, RemoteStore, StoreUnavailable
from ledgersync.services.storage.interface import join_path
from ledgersync.sync.notifier import ChangeEvent, ChangeNotifier


T = TypeVar("T", bound=PersistedMixin)
N = TypeVar("N", bound=LedgerModel)


class EntityRepository(Generic[T, N]):
    """
    CRUD for one entity collection of the signed-in user.

    Subclasses set `collection`, `entity_name`, `model` (the persisted
    type) and `new_model` (the creation payload type), and may override
    `sort()`.
    """

    collection: ClassVar[str]
    entity_name: ClassVar[str]
    model: ClassVar[type]
    new_model: ClassVar[type]

    def __init__(
        self,
        store: RemoteStore,
        identity: IdentityProvider,
        notifier: Optional[ChangeNotifier] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._identity = identity
        self._notifier = notifier
        self._audit = audit_logger or AuditLogger()

    # -------------------------------------------------------------------------
    # Paths
    # -------------------------------------------------------------------------

    def collection_path(self, user_id: str) -> str:
        return join_path("users", user_id, self.collection)

    def entity_path(self, user_id: str, entity_id: str) -> str:
        return join_path(self.collection_path(user_id), entity_id)

    # -------------------------------------------------------------------------
    # Hooks
    # -------------------------------------------------------------------------

    def sort(self, items: list[T]) -> list[T]:
        """Store order by default."""
        return items

    def _require_id(self, entity_id: Optional[str], operation: str) -> str:
        if entity_id is None or not str(entity_id).strip():
            raise MissingIdentifier(
                f"Cannot {operation} {self.entity_name}: missing identifier"
            )
        return str(entity_id).strip()

    async def _call(self, operation: str, path: str, user_id: str, coro) -> Any:
        """Await a store call, logging transport failures before they propagate."""
        try:
            return await coro
        except StoreUnavailable as e:
            self._audit.log_store_error(operation, path, str(e), user_id=user_id)
            raise

    async def _publish(self, user_id: str) -> None:
        if self._notifier is not None:
            await self._notifier.publish(ChangeEvent.for_collection(user_id, self.collection))

    def _parse(self, user_id: str, key: str, payload: Any) -> Optional[T]:
        """Rebuild one stored record, or None (logged) if it is malformed."""
        if not isinstance(payload, dict):
            self._audit.log_record_skipped(
                user_id, self.entity_name, key, "Stored value is not an object"
            )
            return None
        try:
            return self.model.from_wire(key, payload)
        except (ValidationError, ValueError) as e:
            self._audit.log_record_skipped(user_id, self.entity_name, key, str(e))
            return None

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def list(self) -> list[T]:
        """Every record in the collection, sorted by `sort()`."""
        user_id = require_user(self._identity)
        path = self.collection_path(user_id)
        raw = await self._call("read", path, user_id, self._store.get(path))

        items: list[T] = []
        if isinstance(raw, dict):
            for key, payload in raw.items():
                item = self._parse(user_id, key, payload)
                if item is not None:
                    items.append(item)

        self._audit.log_collection_fetched(user_id, self.entity_name, len(items))
        return self.sort(items)

    async def get(self, entity_id: str) -> Optional[T]:
        """One record by id, or None if it does not exist."""
        user_id = require_user(self._identity)
        entity_id = self._require_id(entity_id, "read")
        path = self.entity_path(user_id, entity_id)
        raw = await self._call("read", path, user_id, self._store.get(path))
        if raw is None:
            return None
        return self._parse(user_id, entity_id, raw)

    async def add(self, data: Union[N, dict[str, Any]]) -> T:
        """
        Persist a new record.

        The store stamps createdAt/updatedAt itself. The returned object
        carries PENDING local timestamps until the next list() replaces
        them with the stored values.
        """
        user_id = require_user(self._identity)
        if isinstance(data, dict):
            data = self.new_model.model_validate(data)

        collection_path = self.collection_path(user_id)
        key = await self._call(
            "push_key", collection_path, user_id, self._store.push_key(collection_path)
        )

        payload = data.to_payload()
        payload["createdAt"] = SERVER_TIMESTAMP
        payload["updatedAt"] = SERVER_TIMESTAMP

        path = self.entity_path(user_id, key)
        await self._call("write", path, user_id, self._store.set(path, payload))

        now = EntityTimestamp.pending()
        entity = self.model.model_validate(
            {**data.model_dump(), "id": key, "created_at": now, "updated_at": now}
        )

        self._audit.log_entity_created(user_id, self.entity_name, key)
        await self._publish(user_id)
        return entity

    async def update(self, entity: T) -> T:
        """
        Merge every mutable field of `entity` into its stored record.

        Raises:
            MissingIdentifier: If the entity has no id (nothing is written)
        """
        user_id = require_user(self._identity)
        entity_id = self._require_id(entity.id, "update")

        payload = entity.to_payload()
        payload["updatedAt"] = SERVER_TIMESTAMP

        path = self.entity_path(user_id, entity_id)
        await self._call("update", path, user_id, self._store.update(path, payload))

        updated = entity.model_copy(update={"updated_at": EntityTimestamp.pending()})

        self._audit.log_entity_updated(
            user_id, self.entity_name, entity_id, sorted(k for k in payload if k != "updatedAt")
        )
        await self._publish(user_id)
        return updated

    async def remove(self, entity_id: str) -> None:
        """
        Delete a record. Deleting an id that does not exist is a no-op.

        Raises:
            MissingIdentifier: If `entity_id` is empty (nothing is deleted)
        """
        user_id = require_user(self._identity)
        entity_id = self._require_id(entity_id, "delete")

        path = self.entity_path(user_id, entity_id)
        await self._call("delete", path, user_id, self._store.delete(path))

        self._audit.log_entity_deleted(user_id, self.entity_name, entity_id)
        await self._publish(user_id)
