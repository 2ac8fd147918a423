"""
In-Memory Remote Store

A process-local implementation of the RemoteStore tree. Used by the
test-suite and for running the ledger without any backend configured.

Every call is recorded in `operations` as (operation, path) so callers
can assert what did (or did not) reach the store.
"""

import copy
from typing import Any, Optional

from ledgersync.services.storage.interface import (
    PushKeyGenerator,
    RemoteStore,
    resolve_server_values,
    split_path,
)


class InMemoryRemoteStore(RemoteStore):
    """
    Nested-dict implementation of the remote store.

    Values handed out are deep copies, so callers can never mutate
    persisted state behind the store's back.
    """

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._root: dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self._keys = PushKeyGenerator()
        self.operations: list[tuple[str, str]] = []

    def _walk(self, segments: list[str], create: bool = False) -> Optional[dict]:
        """Return the parent node for the last segment."""
        node = self._root
        for segment in segments[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                if not create:
                    return None
                child = {}
                node[segment] = child
            node = child
        return node

    def _prune(self, segments: list[str]) -> None:
        """Drop interior nodes left empty by a delete."""
        for depth in range(len(segments) - 1, 0, -1):
            parent = self._walk(segments[:depth])
            if parent is None:
                return
            child = parent.get(segments[depth - 1])
            if isinstance(child, dict) and not child:
                del parent[segments[depth - 1]]
            else:
                return

    async def get(self, path: str) -> Optional[Any]:
        segments = split_path(path)
        self.operations.append(("get", path))
        parent = self._walk(segments)
        if parent is None:
            return None
        return copy.deepcopy(parent.get(segments[-1]))

    async def push_key(self, path: str) -> str:
        split_path(path)
        self.operations.append(("push_key", path))
        return self._keys.generate()

    async def set(self, path: str, value: Any) -> None:
        segments = split_path(path)
        self.operations.append(("set", path))
        if value is None:
            await self._delete(segments)
            return
        parent = self._walk(segments, create=True)
        parent[segments[-1]] = resolve_server_values(copy.deepcopy(value))

    async def update(self, path: str, values: dict[str, Any]) -> None:
        segments = split_path(path)
        self.operations.append(("update", path))
        parent = self._walk(segments, create=True)
        current = parent.get(segments[-1])
        if not isinstance(current, dict):
            current = {}
        current.update(resolve_server_values(copy.deepcopy(values)))
        parent[segments[-1]] = current

    async def delete(self, path: str) -> None:
        segments = split_path(path)
        self.operations.append(("delete", path))
        await self._delete(segments)

    async def _delete(self, segments: list[str]) -> None:
        parent = self._walk(segments)
        if parent is not None and segments[-1] in parent:
            del parent[segments[-1]]
            self._prune(segments)

    def snapshot(self) -> dict[str, Any]:
        """Deep copy of the whole tree (test helper)."""
        return copy.deepcopy(self._root)
