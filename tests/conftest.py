"""Shared pytest fixtures."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import datetime

import pytest

from empathos.models import (
    BehavioralReading,
    EmotionalState,
    FacialEmotions,
    FacialReading,
    Gaze,
)
from empathos.monitors.rules import RuleEngine
from empathos.notifications.dispatcher import ActionDispatcher
from empathos.pipeline import StatePipeline


@pytest.fixture
def steady_typing() -> BehavioralReading:
    """Fast, accurate, evenly paced typing."""
    return BehavioralReading(
        confidence=0.8,
        typing_speed=80,
        error_rate=0.05,
        mouse_movements=50,
        click_rate=5,
        pause_duration=1000,
    )


@pytest.fixture
def distracted_face() -> FacialReading:
    """Surprised, fearful expression with the gaze off in a corner."""
    return FacialReading(
        confidence=1.0,
        emotions=FacialEmotions(surprised=1.0, fearful=1.0),
        gaze=Gaze(x=0.0, y=0.0),
    )


@pytest.fixture
def make_state() -> Callable[..., EmotionalState]:
    def _make(
        focus: float = 0.5,
        stress: float = 0.3,
        confusion: float = 0.2,
        flow: float = 0.4,
        valence: float = 0.0,
        arousal: float = 0.38,
        timestamp: datetime | None = None,
    ) -> EmotionalState:
        kwargs = {"timestamp": timestamp} if timestamp else {}
        return EmotionalState(
            focus=focus,
            stress=stress,
            confusion=confusion,
            flow=flow,
            valence=valence,
            arousal=arousal,
            **kwargs,
        )

    return _make


@pytest.fixture
def rule_engine() -> RuleEngine:
    return RuleEngine()


@pytest.fixture
def dispatcher() -> Iterator[ActionDispatcher]:
    d = ActionDispatcher()
    yield d
    d.close()


@pytest.fixture
def pipeline() -> Iterator[StatePipeline]:
    p = StatePipeline()
    yield p
    p.close()
