"""Scheduler service — periodic fusion cycles over the enabled collectors.

Architecture
~~~~~~~~~~~~
The ``SchedulerService`` is the external loop that drives the core.  Every
``cycle_interval_seconds`` it:

1. Reads every enabled collector concurrently, each under its own timeout.
2. Runs one pipeline cycle in a worker thread so slow subscribers never
   block the event loop.
3. Records per-run statistics.

A failed tick is logged and the loop carries on with the next one.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterable
from typing import Any

import structlog

from empathos.collectors.base import BaseCollector, collect_readings
from empathos.config import Settings, get_settings
from empathos.models import SourceKind, utcnow
from empathos.pipeline import CycleResult, StatePipeline

logger = structlog.get_logger(__name__)


def enabled_sources(settings: Settings) -> set[SourceKind]:
    """Source kinds switched on in *settings*."""
    flags = {
        SourceKind.FACIAL: settings.enable_facial,
        SourceKind.VOCAL: settings.enable_vocal,
        SourceKind.BEHAVIORAL: settings.enable_behavioral,
        SourceKind.WEARABLE: settings.enable_wearable,
    }
    return {kind for kind, on in flags.items() if on}


class SchedulerService:
    """Background service that runs a pipeline cycle on a fixed interval.

    Integration::

        scheduler = SchedulerService(pipeline, collectors)
        await scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(
        self,
        pipeline: StatePipeline,
        collectors: Iterable[BaseCollector] = (),
        *,
        interval_seconds: float | None = None,
        collect_timeout: float | None = None,
        enabled: set[SourceKind] | None = None,
        context: str | None = None,
    ) -> None:
        settings = get_settings()
        self._pipeline = pipeline
        self._collectors: dict[SourceKind, BaseCollector] = {c.kind: c for c in collectors}
        self._interval = interval_seconds or settings.cycle_interval_seconds
        self._timeout = collect_timeout or settings.collector_timeout_seconds
        self._enabled = set(enabled) if enabled is not None else enabled_sources(settings)
        self._context = context
        self._running = False
        self._task: asyncio.Task | None = None

        self._stats: dict[str, Any] = {
            "last_run": None,
            "total_runs": 0,
            "last_sources": [],
            "last_actions": 0,
            "errors": 0,
        }

    # ── Lifecycle ─────────────────────────────────────────────

    async def start(self) -> None:
        """Start the periodic cycle loop."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(
            "scheduler.started",
            interval_seconds=self._interval,
            enabled=sorted(k.value for k in self._enabled),
        )

    async def stop(self) -> None:
        """Stop the scheduler and close every collector."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        for collector in self._collectors.values():
            try:
                await collector.close()
            except Exception:
                logger.exception("scheduler.collector_close_error", kind=collector.kind.value)
        logger.info("scheduler.stopped")

    @property
    def stats(self) -> dict[str, Any]:
        return dict(self._stats)

    @property
    def is_running(self) -> bool:
        return self._running

    # ── Sources ───────────────────────────────────────────────

    def add_collector(self, collector: BaseCollector) -> None:
        self._collectors[collector.kind] = collector

    def set_source_enabled(self, kind: SourceKind, enabled: bool) -> None:
        if enabled:
            self._enabled.add(kind)
        else:
            self._enabled.discard(kind)
        logger.info("scheduler.source_toggled", kind=kind.value, enabled=enabled)

    def active_collectors(self) -> list[BaseCollector]:
        return [c for kind, c in self._collectors.items() if kind in self._enabled]

    # ── Main loop ─────────────────────────────────────────────

    async def run_once(self) -> CycleResult:
        """Collect readings and run one pipeline cycle."""
        readings = await collect_readings(self.active_collectors(), timeout=self._timeout)
        result = await asyncio.to_thread(self._pipeline.run_cycle, readings, self._context)

        self._stats["last_run"] = utcnow().isoformat()
        self._stats["total_runs"] += 1
        self._stats["last_sources"] = [s.value for s in result.model.sources]
        self._stats["last_actions"] = len(result.actions)
        return result

    async def _run_loop(self) -> None:
        while self._running:
            started = time.monotonic()
            try:
                await self.run_once()
            except Exception:
                self._stats["errors"] += 1
                logger.exception("scheduler.run_error")

            elapsed = time.monotonic() - started
            await asyncio.sleep(max(0.0, self._interval - elapsed))
