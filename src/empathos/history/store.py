"""Bounded, thread-safe, time-ordered retention of engine outputs."""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Generic, TypeVar

import structlog

from empathos.models import EmotionalState, utcnow

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_AVERAGED_FIELDS = ("focus", "stress", "confusion", "flow", "valence", "arousal")


class BoundedBuffer(Generic[T]):
    """Fixed-capacity FIFO; appending past capacity evicts the oldest item.

    Every operation holds an internal lock, so concurrent readers always see
    the buffer either before or after a write, never in between.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._items: deque[T] = deque(maxlen=capacity)
        self._lock = threading.RLock()

    @property
    def capacity(self) -> int:
        return self._items.maxlen  # type: ignore[return-value]

    def append(self, item: T) -> None:
        with self._lock:
            self._items.append(item)

    def extend(self, items: Iterable[T]) -> None:
        with self._lock:
            self._items.extend(items)

    def recent(self, limit: int | None = None) -> list[T]:
        """Return the newest *limit* items (all when ``None``), oldest first."""
        with self._lock:
            if limit is None:
                return list(self._items)
            if limit <= 0:
                return []
            skip = max(0, len(self._items) - limit)
            return [item for i, item in enumerate(self._items) if i >= skip]

    def latest(self) -> T | None:
        with self._lock:
            return self._items[-1] if self._items else None

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class HistoryStore:
    """Chronological history of :class:`EmotionalState` estimates.

    Parameters
    ----------
    capacity : int
        Maximum number of states retained (default 1000).
    """

    def __init__(self, capacity: int = 1000) -> None:
        self._buffer: BoundedBuffer[EmotionalState] = BoundedBuffer(capacity)

    @property
    def capacity(self) -> int:
        return self._buffer.capacity

    def append(self, state: EmotionalState) -> None:
        self._buffer.append(state)

    def get_recent(self, limit: int | None = None) -> list[EmotionalState]:
        return self._buffer.recent(limit)

    def latest(self) -> EmotionalState | None:
        return self._buffer.latest()

    def get_average_state(
        self,
        window_seconds: float = 300.0,
        *,
        now: datetime | None = None,
    ) -> EmotionalState | None:
        """Mean of every dimension over states younger than *window_seconds*.

        Returns ``None`` when no state falls inside the window.
        """
        now = now or utcnow()
        window = timedelta(seconds=window_seconds)
        recent = [s for s in self._buffer.recent() if now - s.timestamp < window]
        if not recent:
            return None

        count = len(recent)
        means = {
            name: sum(getattr(s, name) for s in recent) / count
            for name in _AVERAGED_FIELDS
        }
        return EmotionalState(**means, timestamp=now)

    def clear(self) -> None:
        self._buffer.clear()
        logger.info("history.cleared")

    def __len__(self) -> int:
        return len(self._buffer)
