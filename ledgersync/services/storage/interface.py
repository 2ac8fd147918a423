"""
Abstract Remote Store Interface

DESIGN DECISION: We define an abstract interface for the remote store.
This allows us to:
1. Back the ledger with Google Sheets (or a realtime database) in production
2. Use in-memory storage for testing
3. Keep repositories decoupled from the storage implementation

The store is a tree of paths, like a realtime database:

    users/{userId}/accounts/{accountId}
    users/{userId}/transactions/{transactionId}
    users/{userId}/swaps/{swapId}
    users/{userId}/preferences

Every write is an atomic per-path operation. There are no multi-path
transactions and no locks - last write wins.
"""

import random
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

from ledgersync.errors import LedgerError


# Written in place of a timestamp; the store replaces it with epoch
# milliseconds at write time.
SERVER_TIMESTAMP = {".sv": "timestamp"}

_ILLEGAL_KEY_CHARS = set(".#$[]")


class StorageError(LedgerError):
    """Base exception for storage operations."""
    pass


class StoreUnavailable(StorageError):
    """Could not reach the storage backend (network, auth, timeout)."""
    pass


def split_path(path: str) -> list[str]:
    """
    Split and validate a store path.

    Raises:
        ValueError: On empty segments or characters the store forbids
    """
    segments = [s for s in path.strip("/").split("/")]
    if not segments or any(not s for s in segments):
        raise ValueError(f"Invalid store path: {path!r}")
    for segment in segments:
        if _ILLEGAL_KEY_CHARS & set(segment):
            raise ValueError(f"Illegal character in store path segment: {segment!r}")
    return segments


def join_path(*segments: str) -> str:
    return "/".join(s.strip("/") for s in segments)


def is_server_timestamp(value: Any) -> bool:
    return isinstance(value, dict) and value == SERVER_TIMESTAMP


def resolve_server_values(value: Any, now_ms: Optional[int] = None) -> Any:
    """Replace every SERVER_TIMESTAMP sentinel in `value` with `now_ms`."""
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    if is_server_timestamp(value):
        return now_ms
    if isinstance(value, dict):
        return {k: resolve_server_values(v, now_ms) for k, v in value.items()}
    if isinstance(value, list):
        return [resolve_server_values(v, now_ms) for v in value]
    return value


class PushKeyGenerator:
    """
    Chronologically ordered, collision-resistant keys.

    Same layout as realtime-database push ids: 8 characters of
    millisecond timestamp followed by 12 random characters. Keys created
    later always sort after earlier ones, so "store order" is creation
    order for every backend.
    """

    PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"

    def __init__(self):
        self._last_ms = 0
        self._last_rand = [0] * 12
        self._lock = threading.Lock()

    def generate(self) -> str:
        with self._lock:
            now = int(time.time() * 1000)
            duplicate = now == self._last_ms
            self._last_ms = now

            ts_chars = []
            for _ in range(8):
                ts_chars.append(self.PUSH_CHARS[now % 64])
                now //= 64
            key = "".join(reversed(ts_chars))

            if not duplicate:
                self._last_rand = [random.randrange(64) for _ in range(12)]
            else:
                # Same millisecond: increment the random part
                i = 11
                while i >= 0 and self._last_rand[i] == 63:
                    self._last_rand[i] = 0
                    i -= 1
                if i >= 0:
                    self._last_rand[i] += 1

            return key + "".join(self.PUSH_CHARS[r] for r in self._last_rand)


class RemoteStore(ABC):
    """
    Abstract interface for the tree-structured remote store.

    All methods are coroutines. Transport failures surface as
    StoreUnavailable; a malformed path raises ValueError.
    """

    @abstractmethod
    async def get(self, path: str) -> Optional[Any]:
        """
        Read the value at a path.

        Returns:
            The stored value (dicts for interior nodes) or None if absent
        """
        pass

    @abstractmethod
    async def push_key(self, path: str) -> str:
        """
        Generate a new child key under `path` without writing anything.
        """
        pass

    @abstractmethod
    async def set(self, path: str, value: Any) -> None:
        """
        Replace the value at a path.

        SERVER_TIMESTAMP sentinels are resolved at write time.
        """
        pass

    @abstractmethod
    async def update(self, path: str, values: dict[str, Any]) -> None:
        """
        Merge `values` into the object at a path.

        Keys not present in `values` are left untouched.
        """
        pass

    @abstractmethod
    async def delete(self, path: str) -> None:
        """
        Delete the value at a path. Deleting an absent path is a no-op.
        """
        pass
