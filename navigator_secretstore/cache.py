"""
Decryption Cache — last successful decryption per secret.

An entry for ``secret.id`` is valid only while its stored ``updated`` equals
the secret's current ``updated``. Entries are never invalidated explicitly;
a stale one is detected by timestamp inequality and replaced.

Concurrent misses for the same ``(id, updated)`` share one decryption task.
The lock only guards the maps and is never held across the crypto call.
Failed decryptions are not cached.

Security Note:
    Cached values are plaintext. Never log them.
"""
import asyncio
import logging
from collections import OrderedDict
from datetime import datetime
from typing import Awaitable, Callable, NamedTuple, Optional

logger = logging.getLogger("navigator.secretstore")

Loader = Callable[[], Awaitable[dict[str, str]]]


class CachedDecryptedJSON(NamedTuple):
    updated: datetime
    json: dict[str, str]


class DecryptionCache:
    """In-process memo of decrypted secure JSON data keyed by secret id.

    Args:
        max_entries: Optional LRU bound; ``None`` keeps every entry.
    """

    def __init__(self, max_entries: Optional[int] = None):
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be a positive integer")
        self._max_entries = max_entries
        self._entries: OrderedDict[int, CachedDecryptedJSON] = OrderedDict()
        self._inflight: dict[tuple[int, datetime], asyncio.Future] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, secret_id: object) -> bool:
        return secret_id in self._entries

    def _lookup(self, secret_id: int, updated: datetime) -> Optional[dict[str, str]]:
        item = self._entries.get(secret_id)
        if item is None or item.updated != updated:
            return None
        self._entries.move_to_end(secret_id)
        return item.json

    def _store(self, secret_id: int, updated: datetime, values: dict[str, str]) -> None:
        self._entries[secret_id] = CachedDecryptedJSON(updated, values)
        self._entries.move_to_end(secret_id)
        if self._max_entries is not None:
            while len(self._entries) > self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Decryption cache evicted secret id=%s", evicted)

    def _settle(self, key: tuple[int, datetime], task: asyncio.Future) -> None:
        self._inflight.pop(key, None)
        if task.cancelled() or task.exception() is not None:
            return
        self._store(key[0], key[1], task.result())

    async def get_or_load(
        self,
        secret_id: int,
        updated: datetime,
        loader: Loader,
    ) -> dict[str, str]:
        """Return cached values for ``(secret_id, updated)`` or run ``loader``.

        Raises:
            Exception: Whatever ``loader`` raises; nothing is cached then.
        """
        key = (secret_id, updated)
        async with self._lock:
            cached = self._lookup(secret_id, updated)
            if cached is not None:
                return cached
            task = self._inflight.get(key)
            if task is None:
                task = asyncio.ensure_future(loader())
                self._inflight[key] = task
                task.add_done_callback(lambda t: self._settle(key, t))
        # a cancelled waiter must not cancel the shared decryption
        return await asyncio.shield(task)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()
