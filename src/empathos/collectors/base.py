"""Reading collectors — the seam between detectors and the fusion core."""

from __future__ import annotations

import asyncio
import inspect
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any

import structlog
from pydantic import BaseModel, ValidationError

from empathos.models import SourceKind, SourceReading, parse_reading

logger = structlog.get_logger(__name__)


class BaseCollector(ABC):
    """Contract that every detector-facing collector must implement.

    A collector returns the detector's latest already-scored reading, or
    ``None`` when nothing is available this cycle.  It must never block the
    core: :func:`collect_readings` enforces a timeout on every read.
    """

    kind: SourceKind

    @abstractmethod
    async def read(self) -> SourceReading | None:
        """Return the current reading for this source."""

    async def close(self) -> None:
        """Release any resources held by the collector."""


ReadingFactory = Callable[[], Any]


class CallableCollector(BaseCollector):
    """Adapt a plain (sync or async) callable into a collector.

    The callable may return a reading model, a mapping (validated with
    :func:`parse_reading`), or ``None``.
    """

    def __init__(self, kind: SourceKind, fn: ReadingFactory | Callable[[], Awaitable[Any]]) -> None:
        self.kind = kind
        self._fn = fn

    async def read(self) -> SourceReading | None:
        if inspect.iscoroutinefunction(self._fn):
            result = await self._fn()
        else:
            # Blocking detectors run off the loop so the read timeout can fire.
            result = await asyncio.to_thread(self._fn)
        if inspect.isawaitable(result):
            result = await result
        if result is None:
            return None
        if isinstance(result, Mapping):
            result = parse_reading({"kind": self.kind.value, **result})
        if not isinstance(result, BaseModel) or getattr(result, "kind", None) != self.kind.value:
            raise TypeError(
                f"{self.kind.value} collector returned {type(result).__name__}, "
                f"expected a {self.kind.value} reading"
            )
        return result


async def _read_one(collector: BaseCollector, timeout: float) -> SourceReading | None:
    kind = collector.kind.value
    try:
        return await asyncio.wait_for(collector.read(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("collector.timeout", kind=kind, timeout=timeout)
    except ValidationError as exc:
        logger.warning("collector.malformed_reading", kind=kind, errors=exc.error_count())
    except Exception as exc:
        logger.error("collector.read_failed", kind=kind, error=str(exc))
    return None


async def collect_readings(
    collectors: Iterable[BaseCollector],
    *,
    timeout: float = 1.5,
) -> list[SourceReading]:
    """Read every collector concurrently, each bounded by *timeout* seconds.

    Sources that time out, raise, or produce an invalid reading are left
    out of the result; this function never raises for a single source.
    """
    collectors = list(collectors)
    results = await asyncio.gather(*(_read_one(c, timeout) for c in collectors))
    return [r for r in results if r is not None]
