"""Fusion engine — confidence-weighted combination of detector readings.

Each detector category has a pure sub-transform mapping its reading onto
one or more cognitive dimensions.  The engine adds every contribution,
scaled by the reading's confidence, onto a fixed per-dimension baseline and
normalises by the total confidence observed in the cycle.

=============  ==========================================  ================
Source         Dimensions                                  Notes
=============  ==========================================  ================
facial         focus, stress                               gaze optional
vocal          stress                                      classified tone
behavioral     focus, confusion, flow                      typing / mouse
wearable       stress                                      HR + HRV
=============  ==========================================  ================

The baseline is added once and is **not** weighted, while the sum is divided
by the observed weight only.  With a single confident source this lands far
outside [0, 1] (e.g. focus 1.54 for a steady typist), which is why every
dimension is clamped afterwards.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable

import structlog

from empathos.models import (
    BehavioralReading,
    CognitiveStateModel,
    FacialReading,
    SourceKind,
    SourceReading,
    VocalEmotion,
    VocalReading,
    WearableReading,
)

logger = structlog.get_logger(__name__)

BASELINE: dict[str, float] = {
    "focus": 0.5,
    "stress": 0.3,
    "confusion": 0.2,
    "flow": 0.4,
}

_VOCAL_STRESS = {
    VocalEmotion.STRESSED: 0.8,
    VocalEmotion.EXCITED: 0.5,
    VocalEmotion.CALM: 0.2,
}

_KIND_ORDER = {kind: i for i, kind in enumerate(SourceKind)}


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp *value* into [low, high]; NaN maps to *low*."""
    if math.isnan(value):
        return low
    return max(low, min(high, value))


def _usable_confidence(value: object) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value) and 0.0 <= value <= 1.0


# ── Per-source sub-transforms ─────────────────────────────────


def facial_contributions(reading: FacialReading) -> dict[str, float]:
    emotions = reading.emotions
    expression = emotions.neutral * 0.8 - emotions.surprised * 0.3 - emotions.fearful * 0.2
    if reading.gaze is not None:
        gaze_stability = 1 - abs(reading.gaze.x - 0.5) - abs(reading.gaze.y - 0.5)
    else:
        gaze_stability = 0.5
    return {
        "focus": (expression + gaze_stability) / 2,
        "stress": emotions.angry * 0.4 + emotions.fearful * 0.3 + emotions.sad * 0.2,
    }


def vocal_contributions(reading: VocalReading) -> dict[str, float]:
    return {"stress": _VOCAL_STRESS.get(reading.emotion, 0.4)}


def behavioral_contributions(reading: BehavioralReading) -> dict[str, float]:
    speed = reading.typing_speed
    errors = reading.error_rate
    pause = reading.pause_duration

    typing_consistency = 1.0 if 40 < speed < 120 else 0.5
    steady_pacing = 0.8 if pause < 2000 else 0.4
    focus = (typing_consistency + (1 - errors) + steady_pacing) / 3

    confusion = errors * 0.6 + (0.4 if reading.mouse_movements > 100 else 0.1)

    optimal_speed = 60 < speed < 100
    low_errors = errors < 0.1
    steady_rhythm = 500 < pause < 1500
    if optimal_speed and low_errors and steady_rhythm:
        flow = 0.9
    elif optimal_speed and low_errors:
        flow = 0.7
    else:
        flow = 0.4

    return {"focus": focus, "confusion": confusion, "flow": flow}


def wearable_contributions(reading: WearableReading) -> dict[str, float]:
    if reading.heart_rate is not None:
        hr_stress = max(0.0, (reading.heart_rate - 60) / 40)
    else:
        hr_stress = 0.5
    if reading.heart_rate_variability is not None:
        hrv_stress = 1 - reading.heart_rate_variability / 100
    else:
        hrv_stress = 0.5
    return {"stress": (hr_stress + hrv_stress) / 2}


_TRANSFORMS: dict[SourceKind, Callable[..., dict[str, float]]] = {
    SourceKind.FACIAL: facial_contributions,
    SourceKind.VOCAL: vocal_contributions,
    SourceKind.BEHAVIORAL: behavioral_contributions,
    SourceKind.WEARABLE: wearable_contributions,
}


# ── Engine ────────────────────────────────────────────────────


class FusionEngine:
    """Combine one cycle's readings into a :class:`CognitiveStateModel`.

    The engine is stateless; :meth:`compute_state` is deterministic for a
    given set of readings regardless of the order they arrive in.
    """

    def compute_state(self, readings: Iterable[SourceReading]) -> CognitiveStateModel:
        by_kind = self._select(readings)

        sums = dict(BASELINE)
        total_weight = 0.0
        sources: list[SourceKind] = []

        for kind in sorted(by_kind, key=_KIND_ORDER.__getitem__):
            reading = by_kind[kind]
            weight = reading.confidence
            contributions = _TRANSFORMS[kind](reading)
            if not all(math.isfinite(v) for v in contributions.values()):
                logger.warning("fusion.reading_rejected", kind=kind.value, reason="non_finite_metric")
                continue
            for dimension, value in contributions.items():
                sums[dimension] += value * weight
            total_weight += weight
            sources.append(kind)

        if total_weight > 0:
            values = {dim: clamp(total / total_weight) for dim, total in sums.items()}
        else:
            values = dict(BASELINE)

        confidence = clamp(total_weight / len(sources)) if sources else 0.0

        model = CognitiveStateModel(**values, confidence=confidence, sources=tuple(sources))
        logger.debug(
            "fusion.computed",
            sources=[s.value for s in sources],
            total_weight=round(total_weight, 4),
            focus=model.focus,
            stress=model.stress,
            confusion=model.confusion,
            flow=model.flow,
        )
        return model

    # ── Internals ─────────────────────────────────────────────

    @staticmethod
    def _select(readings: Iterable[SourceReading]) -> dict[SourceKind, SourceReading]:
        """Drop unusable readings and keep one reading per source kind."""
        by_kind: dict[SourceKind, SourceReading] = {}
        for reading in readings:
            if reading is None:
                continue
            confidence = getattr(reading, "confidence", None)
            if not _usable_confidence(confidence):
                logger.warning(
                    "fusion.reading_rejected",
                    kind=getattr(reading, "kind", None),
                    confidence=confidence,
                )
                continue
            kind = SourceKind(reading.kind)
            if kind in by_kind:
                logger.warning("fusion.duplicate_source", kind=kind.value)
            by_kind[kind] = reading
        return by_kind
