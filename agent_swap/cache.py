import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional


@dataclass
class CacheEntry:
    value: Any
    expires_at: Optional[float]


class LookupCache:
    """Explicit memo for external lookups, scoped to one inbound event.

    Concurrent callers asking for the same key share a single in-flight load.
    Failed loads are not cached.
    """

    def __init__(self, default_ttl: Optional[float] = None):
        self.default_ttl = default_ttl
        self._cache: Dict[Hashable, CacheEntry] = {}
        self._inflight: Dict[Hashable, "asyncio.Future[Any]"] = {}
        self._lock = asyncio.Lock()

    def _live(self, key: Hashable) -> Optional[CacheEntry]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and time.monotonic() > entry.expires_at:
            del self._cache[key]
            return None
        return entry

    async def get(self, key: Hashable) -> Optional[Any]:
        async with self._lock:
            entry = self._live(key)
            return entry.value if entry else None

    async def set(self, key: Hashable, value: Any, ttl: Optional[float] = None) -> None:
        async with self._lock:
            ttl = ttl if ttl is not None else self.default_ttl
            expires_at = time.monotonic() + ttl if ttl is not None else None
            self._cache[key] = CacheEntry(value=value, expires_at=expires_at)

    async def get_or_load(self, key: Hashable, loader: Callable[[], Awaitable[Any]]) -> Any:
        # Check-and-register runs without awaiting, so it is atomic on the loop
        entry = self._live(key)
        if entry is not None:
            return entry.value

        pending = self._inflight.get(key)
        if pending is not None:
            return await asyncio.shield(pending)

        pending = asyncio.get_running_loop().create_future()
        self._inflight[key] = pending
        try:
            value = await loader()
        except asyncio.CancelledError:
            self._inflight.pop(key, None)
            pending.cancel()
            raise
        except Exception as exc:
            self._inflight.pop(key, None)
            pending.set_exception(exc)
            # Mark retrieved so a failure nobody else awaited does not warn
            pending.exception()
            raise

        await self.set(key, value)
        self._inflight.pop(key, None)
        pending.set_result(value)
        return value

    async def clear(self) -> None:
        async with self._lock:
            self._cache.clear()

    def size(self) -> int:
        return len(self._cache)
