"""Process-wide single-flight cache for fetched resources.

Keys are normalized URL strings, optionally suffixed with the kind of
sub-resource they hold::

    https://example.com            -> page markup
    https://example.com-favicon    -> resolved favicon URL
    https://example.com-oembed     -> decoded oEmbed object

Entries live for the lifetime of the process; there is no eviction.  A key is
written only when its producer succeeds, so a failed resolution leaves the key
empty and the next caller retries it.

Concurrent callers asking for the same missing key share one in-flight
producer task instead of each performing the fetch.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    value: V
    created_at: datetime = field(default_factory=_utcnow)


class FetchCache:
    """Key -> value store with single-flight resolution.

    Usage::

        html = await fetch_cache.resolve(str(target), lambda: fetch_page(url))
    """

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry[Any]] = {}
        self._inflight: dict[str, asyncio.Future[Any]] = {}
        self._lock = asyncio.Lock()

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get_entry(self, key: str) -> CacheEntry[Any] | None:
        """Return the stored entry for *key* without triggering a fetch."""
        return self._entries.get(key)

    async def resolve(self, key: str, producer: Callable[[], Awaitable[V]]) -> V:
        """Return the value cached under *key*, producing it on a miss.

        Only one producer runs per key at a time; callers arriving while it
        is in flight await the same task.  If the producer raises, every
        waiting caller receives the exception and nothing is stored.
        """
        async with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                logger.debug("Cache hit for '%s'.", key)
                return entry.value

            task = self._inflight.get(key)
            if task is None:
                logger.debug("Cache miss for '%s'. Fetching data...", key)
                task = asyncio.ensure_future(self._produce(key, producer))
                self._inflight[key] = task
            else:
                logger.debug("Joining in-flight fetch for '%s'.", key)

        # shield: one waiter being cancelled must not cancel the shared fetch
        return await asyncio.shield(task)

    async def _produce(self, key: str, producer: Callable[[], Awaitable[V]]) -> V:
        try:
            value = await producer()
        except Exception as exc:
            logger.debug("Producer for '%s' failed, nothing cached: %s", key, exc)
            raise
        else:
            self._entries[key] = CacheEntry(value=value)
            logger.debug("Data cached for '%s'.", key)
        finally:
            self._inflight.pop(key, None)
        return value

    def clear(self) -> None:
        """Drop every stored entry.  In-flight fetches are left running."""
        self._entries.clear()


#: Module-level singleton shared by every request.
fetch_cache: FetchCache = FetchCache()
