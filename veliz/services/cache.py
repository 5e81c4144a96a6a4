# veliz/services/cache.py

import time
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 300.0


class TTLCache(Generic[T]):
    """
    Holds a single value for `ttl_seconds`. Expired or empty -> get() returns None.

    The clock is injectable so tests can move time forward.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._value: Optional[T] = None
        self._stored_at: Optional[float] = None

    def get(self) -> Optional[T]:
        if self._stored_at is None:
            return None
        if self._clock() - self._stored_at > self.ttl_seconds:
            return None
        return self._value

    def set(self, value: T) -> None:
        self._value = value
        self._stored_at = self._clock()

    def invalidate(self) -> None:
        self._value = None
        self._stored_at = None
