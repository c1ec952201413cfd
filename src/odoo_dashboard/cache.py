"""Result cache and in-flight deduplication for Odoo read calls.

Two cooperating pieces reduce redundant remote calls:

- ResultCache keeps the last successful result per call key for a short TTL.
- InFlightRegistry collapses concurrent identical calls into one remote call.

Both rely on the single-threaded event loop: the check-and-register step of
the registry contains no ``await``, so two callers can never both start a
call for the same key.
"""

import asyncio
import json
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


def make_cache_key(
    model: str,
    method: str,
    args: list[Any] | tuple[Any, ...],
    kwargs: dict[str, Any],
) -> str:
    """Build a deterministic key for an execute_kw call.

    Args:
        model: Odoo model name.
        method: Model method.
        args: Positional arguments.
        kwargs: Keyword arguments.

    Returns:
        JSON string; equal calls give equal keys and any differing argument
        gives a different key.
    """
    return json.dumps(
        {"model": model, "method": method, "args": args, "kwargs": kwargs},
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )


@dataclass
class CacheEntry:
    """A cached value and the time it was stored."""

    value: Any
    stored_at: float


class ResultCache:
    """In-memory TTL cache, last write wins.

    Expired entries are evicted on read and swept on write at most once per
    TTL, so the cache holds no more than the keys written in the last two
    TTL periods.
    """

    def __init__(
        self,
        ttl: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the cache.

        Args:
            ttl: Seconds a stored value stays fresh.
            clock: Monotonic time source (injectable for tests).
        """
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._last_sweep = clock()

    def get(self, key: str) -> tuple[bool, Any]:
        """Look up a fresh value.

        Returns:
            Tuple of (hit, value). Expired entries are evicted and reported
            as a miss.
        """
        entry = self._entries.get(key)
        if entry is None:
            return False, None
        if self._clock() - entry.stored_at >= self.ttl:
            del self._entries[key]
            return False, None
        return True, entry.value

    def remember(self, key: str, value: Any) -> None:
        """Store a value, replacing any previous entry for the key."""
        now = self._clock()
        if now - self._last_sweep >= self.ttl:
            self._evict_expired(now)
        self._entries[key] = CacheEntry(value=value, stored_at=now)

    def _evict_expired(self, now: float) -> None:
        expired = [k for k, e in self._entries.items() if now - e.stored_at >= self.ttl]
        for key in expired:
            del self._entries[key]
        self._last_sweep = now
        if expired:
            logger.debug(f"Evicted {len(expired)} expired cache entries")

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def _consume_result(task: "asyncio.Task[Any]") -> None:
    # Mark the exception as retrieved when every waiter has gone away
    if not task.cancelled():
        task.exception()


class InFlightRegistry:
    """At most one running call per key; late callers join the running one."""

    def __init__(self) -> None:
        self._pending: dict[str, asyncio.Task[Any]] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._pending

    def __len__(self) -> int:
        return len(self._pending)

    async def run(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        on_success: Callable[[Any], None] | None = None,
    ) -> Any:
        """Run ``factory()`` for ``key`` or join the call already running.

        Args:
            key: Call key.
            factory: Zero-argument coroutine function doing the real call.
            on_success: Called with the result before the key is released.

        Returns:
            The shared result. Every joined caller gets the same result or
            the same exception.
        """
        task = self._pending.get(key)
        if task is not None:
            logger.debug("Joining in-flight call")
        else:
            task = asyncio.ensure_future(self._execute(key, factory, on_success))
            task.add_done_callback(_consume_result)
            self._pending[key] = task

        # Cancelling this waiter must not cancel the call other waiters share
        return await asyncio.shield(task)

    async def _execute(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        on_success: Callable[[Any], None] | None,
    ) -> Any:
        try:
            result = await factory()
            if on_success is not None:
                on_success(result)
            return result
        finally:
            self._pending.pop(key, None)


class CachedExecutor:
    """Cache lookup first, then a deduplicated call that fills the cache."""

    def __init__(self, cache: ResultCache, inflight: InFlightRegistry | None = None) -> None:
        self.cache = cache
        self.inflight = inflight if inflight is not None else InFlightRegistry()

    async def get_or_call(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Return the cached value for ``key`` or compute it once.

        Args:
            key: Call key (see make_cache_key).
            factory: Zero-argument coroutine function doing the real call.

        Returns:
            The cached or freshly fetched value.
        """
        hit, value = self.cache.get(key)
        if hit:
            logger.debug("Cache hit")
            return value

        return await self.inflight.run(
            key,
            factory,
            on_success=lambda result: self.cache.remember(key, result),
        )
