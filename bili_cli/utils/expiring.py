"""
Time-bound, lazily refreshed values shared across concurrent tasks.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Generic, Optional, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")


class ExpiringValue(Generic[T]):
    """
    Holds a value derived by an async factory and re-derives it after `ttl`
    seconds.

    Reads of a fresh value never touch the lock. Refreshes are serialized by an
    `asyncio.Lock` and the freshness check is repeated inside it, so a burst of
    callers hitting an expired value triggers exactly one derivation.
    """

    def __init__(
        self,
        name: str,
        factory: Callable[[], Awaitable[T]],
        ttl: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            name: Label used in log messages.
            factory: Coroutine function producing a new value.
            ttl: Lifetime of a derived value in seconds.
            clock: Monotonic time source, injectable for tests.
        """
        self.name = name
        self.ttl = ttl
        self._factory = factory
        self._clock = clock
        self._value: Optional[T] = None
        self._derived_at: float = 0.0
        self._lock = asyncio.Lock()

    @property
    def derived_at(self) -> float:
        return self._derived_at

    def _is_fresh(self, now: float) -> bool:
        return self._value is not None and now - self._derived_at < self.ttl

    def peek(self) -> Optional[T]:
        """Returns the cached value if it is still fresh, without refreshing."""
        return self._value if self._is_fresh(self._clock()) else None

    async def get_or_refresh(self) -> T:
        if self._is_fresh(self._clock()):
            return self._value  # type: ignore[return-value]

        async with self._lock:
            if self._is_fresh(self._clock()):
                return self._value  # type: ignore[return-value]

            log.debug(f"Refreshing {self.name}...")
            value = await self._factory()
            self._value = value
            self._derived_at = self._clock()
            return value

    def invalidate(self) -> None:
        """Drops the cached value so the next read derives a new one."""
        self._value = None
        self._derived_at = 0.0
