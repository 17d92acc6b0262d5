"""State pipeline — one fusion-and-orchestration cycle over owned engines.

A cycle runs:

1. Fuse the cycle's readings into a cognitive model
2. Derive the emotional state and append it to the history
3. Evaluate the rules against the new state and the previous one
4. Record and dispatch the resulting actions

Steps 1-3 and recording are serialised, so overlapping callers always see
a consistent "previous state" for the edge-triggered rules.  Delivery to
subscribers happens after the lock is released.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

import structlog

from empathos.affect.mapper import AffectMapper
from empathos.config import Settings, get_settings
from empathos.fusion.engine import FusionEngine
from empathos.history.store import HistoryStore
from empathos.models import (
    ActionEvent,
    CognitiveStateModel,
    EmotionalState,
    SourceReading,
    Thresholds,
)
from empathos.monitors.rules import RuleEngine
from empathos.notifications.dispatcher import ActionCallback, ActionDispatcher, Subscription
from empathos.notifications.handlers import WebhookSubscriber, log_action

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class CycleResult:
    """Everything one cycle produced."""

    model: CognitiveStateModel
    state: EmotionalState
    actions: list[ActionEvent] = field(default_factory=list)


class StatePipeline:
    """Owner of the engines that make up one fusion-and-orchestration cycle.

    Parameters
    ----------
    fusion : FusionEngine
    history : HistoryStore
    rules : RuleEngine
    dispatcher : ActionDispatcher
    average_window_seconds : float
        Default window for :meth:`get_average_state`.
    """

    def __init__(
        self,
        fusion: FusionEngine | None = None,
        history: HistoryStore | None = None,
        rules: RuleEngine | None = None,
        dispatcher: ActionDispatcher | None = None,
        *,
        average_window_seconds: float = 300.0,
    ) -> None:
        self.fusion = fusion or FusionEngine()
        self.history = history or HistoryStore()
        self.mapper = AffectMapper(self.history)
        self.rules = rules or RuleEngine()
        self.dispatcher = dispatcher or ActionDispatcher()
        self.average_window_seconds = average_window_seconds
        self._cycle_lock = threading.Lock()

    def run_cycle(
        self,
        readings: Iterable[SourceReading],
        context: str | None = None,
    ) -> CycleResult:
        with self._cycle_lock:
            previous = self.history.latest()
            model = self.fusion.compute_state(readings)
            state = self.mapper.to_emotional_state(model, context)
            actions = self.rules.orchestrate(state, previous)
            for action in actions:
                self.dispatcher.record(action)

        # Delivery happens outside the cycle lock so a stuck inline
        # subscriber holds up only its own caller.
        for action in actions:
            self.dispatcher.deliver(action)

        logger.info(
            "pipeline.cycle_completed",
            sources=[s.value for s in model.sources],
            confidence=round(model.confidence, 3),
            focus=round(state.focus, 3),
            stress=round(state.stress, 3),
            actions=[a.type.value for a in actions],
        )
        return CycleResult(model=model, state=state, actions=actions)

    # ── Read / subscribe surface ──────────────────────────────

    def get_recent(self, limit: int | None = None) -> list[EmotionalState]:
        return self.history.get_recent(limit)

    def get_average_state(
        self,
        window_seconds: float | None = None,
        *,
        now: datetime | None = None,
    ) -> EmotionalState | None:
        """Average of the states recorded in the last *window_seconds*.

        Defaults to the window the pipeline was built with.
        """
        if window_seconds is None:
            window_seconds = self.average_window_seconds
        return self.history.get_average_state(window_seconds, now=now)

    def get_action_history(self, limit: int | None = None) -> list[ActionEvent]:
        return self.dispatcher.get_action_history(limit)

    def subscribe(self, callback: ActionCallback, *, background: bool = True) -> Subscription:
        """Register *callback* for every action the pipeline emits.

        Subscribers run on their own worker behind a bounded queue unless
        ``background=False`` is passed, in which case they run inline on
        the thread that called :meth:`run_cycle`.
        """
        return self.dispatcher.subscribe(callback, background=background)

    def update_threshold(self, name: str, value: float) -> bool:
        return self.rules.update_threshold(name, value)

    def close(self) -> None:
        self.dispatcher.close()


# ── Factory ───────────────────────────────────────────────────


def create_pipeline(settings: Settings | None = None) -> StatePipeline:
    """Build a :class:`StatePipeline` wired from application settings.

    * Capacities, thresholds and the averaging window come from *settings*.
    * :func:`log_action` is subscribed when ``settings.log_actions`` is set.
    * A background :class:`WebhookSubscriber` is added when
      ``settings.webhook_url`` is non-empty.
    """
    settings = settings or get_settings()
    thresholds = Thresholds(
        stress=settings.stress_threshold,
        deep_work=settings.deep_work_threshold,
        high_confusion=settings.high_confusion_threshold,
        low_focus=settings.low_focus_threshold,
    )
    pipeline = StatePipeline(
        history=HistoryStore(settings.history_capacity),
        rules=RuleEngine(thresholds),
        dispatcher=ActionDispatcher(
            settings.action_history_capacity,
            queue_size=settings.subscriber_queue_size,
            put_timeout=settings.subscriber_put_timeout_seconds,
        ),
        average_window_seconds=settings.average_window_seconds,
    )

    if settings.log_actions:
        pipeline.subscribe(log_action, background=False)

    if settings.webhook_url:
        pipeline.subscribe(
            WebhookSubscriber(settings.webhook_url, timeout=settings.webhook_timeout_seconds),
            background=True,
        )

    return pipeline
