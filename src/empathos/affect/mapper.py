"""Affect mapper — valence / arousal derived from a fused cognitive model."""

from __future__ import annotations

from datetime import datetime

from empathos.fusion.engine import clamp
from empathos.history.store import HistoryStore
from empathos.models import CognitiveStateModel, EmotionalState, utcnow


def derive_emotional_state(
    model: CognitiveStateModel,
    context: str | None = None,
    timestamp: datetime | None = None,
) -> EmotionalState:
    """Map a cognitive model onto the valence / arousal plane.

    Valence rewards flow and penalises stress and confusion; arousal is
    driven mostly by stress with a smaller focus component.
    """
    positivity = model.flow * 0.5 + (1 - model.stress) * 0.3 + (1 - model.confusion) * 0.2
    valence = clamp(positivity * 2 - 1, -1.0, 1.0)
    arousal = clamp(model.focus * 0.4 + model.stress * 0.6)
    return EmotionalState(
        focus=model.focus,
        stress=model.stress,
        confusion=model.confusion,
        flow=model.flow,
        valence=valence,
        arousal=arousal,
        timestamp=timestamp or utcnow(),
        context=context,
    )


class AffectMapper:
    """Derive the public state for each cycle and record it in *history*."""

    def __init__(self, history: HistoryStore) -> None:
        self._history = history

    def to_emotional_state(
        self,
        model: CognitiveStateModel,
        context: str | None = None,
    ) -> EmotionalState:
        state = derive_emotional_state(model, context)
        self._history.append(state)
        return state
