"""Rule engine — evaluates orchestration rules against each new state."""

from __future__ import annotations

import threading
from collections.abc import Callable

import structlog

from empathos.models import (
    ActionEvent,
    ActionPriority,
    ActionType,
    EmotionalState,
    Thresholds,
)

logger = structlog.get_logger(__name__)

DEEP_WORK_MIN_FLOW = 0.6
FOCUS_DROP_FROM = 0.5
CALM_THEME_STRESS = 0.6
ENERGETIC_THEME_AROUSAL = 0.7

_Rule = Callable[[EmotionalState, EmotionalState | None, Thresholds], ActionEvent | None]


def _provenance(rule: str, metric: str, value: float) -> str:
    return f"{rule}:{metric}={value:.2f}"


# ── Rules ─────────────────────────────────────────────────────


def stress_relief(
    state: EmotionalState, previous: EmotionalState | None, thresholds: Thresholds,
) -> ActionEvent | None:
    if state.stress <= thresholds.stress:
        return None
    return ActionEvent(
        type=ActionType.NOTIFICATION,
        priority=ActionPriority.HIGH,
        payload={
            "title": "High Stress Detected",
            "message": "Consider taking a short break. Would you like a breathing exercise?",
            "actions": ["Take Break", "Continue Working", "Dismiss"],
            "duration_ms": 5000,
        },
        triggered_by=_provenance("stress-relief", "stress", state.stress),
    )


def deep_work(
    state: EmotionalState, previous: EmotionalState | None, thresholds: Thresholds,
) -> ActionEvent | None:
    if not (state.focus > thresholds.deep_work and state.flow > DEEP_WORK_MIN_FLOW):
        return None
    return ActionEvent(
        type=ActionType.DEEP_WORK,
        priority=ActionPriority.HIGH,
        payload={
            "mode": "enable",
            "silence_notifications": True,
            "minimize_distractions": True,
            "estimated_duration_ms": 30 * 60 * 1000,
        },
        triggered_by=_provenance("deep-work", "flow", state.flow),
    )


def confusion_assist(
    state: EmotionalState, previous: EmotionalState | None, thresholds: Thresholds,
) -> ActionEvent | None:
    if state.confusion <= thresholds.high_confusion:
        return None
    return ActionEvent(
        type=ActionType.ASSIST,
        priority=ActionPriority.MEDIUM,
        payload={
            "title": "Need Help?",
            "message": "I notice you might be stuck. Would you like me to:",
            "suggestions": [
                "Search documentation",
                "Simplify current task",
                "Show examples",
                "Take a break",
            ],
        },
        triggered_by=_provenance("confusion-assist", "confusion", state.confusion),
    )


def focus_restoration(
    state: EmotionalState, previous: EmotionalState | None, thresholds: Thresholds,
) -> ActionEvent | None:
    """Edge-triggered: fires only on the cycle focus falls from > 0.5."""
    if previous is None:
        return None
    if not (state.focus < thresholds.low_focus and previous.focus > FOCUS_DROP_FROM):
        return None
    return ActionEvent(
        type=ActionType.SUGGESTION,
        priority=ActionPriority.LOW,
        payload={
            "message": "Your focus seems to have drifted. Quick tips:",
            "tips": [
                "Close unnecessary tabs",
                "Review your current goal",
                "Take a 2-minute walk",
                "Adjust lighting/environment",
            ],
        },
        triggered_by=_provenance("focus-restoration", "focus", state.focus),
    )


def theme_adaptation(
    state: EmotionalState, previous: EmotionalState | None, thresholds: Thresholds,
) -> ActionEvent:
    if state.stress > CALM_THEME_STRESS:
        payload = {
            "theme": "calm",
            "reduce_animations": True,
            "low_contrast": True,
            "warm_colors": True,
            "minimize_clutter": True,
        }
        metric, value = "stress", state.stress
    elif state.arousal > ENERGETIC_THEME_AROUSAL and state.valence > 0:
        payload = {"theme": "energetic", "vibrant_colors": True, "smooth_animations": True}
        metric, value = "arousal", state.arousal
    else:
        payload = {"theme": "neutral"}
        metric, value = "arousal", state.arousal
    return ActionEvent(
        type=ActionType.UI_THEME,
        priority=ActionPriority.LOW,
        payload=payload,
        triggered_by=_provenance("theme-adaptation", metric, value),
    )


DEFAULT_RULES: dict[str, _Rule] = {
    "stress-relief": stress_relief,
    "deep-work": deep_work,
    "confusion-assist": confusion_assist,
    "focus-restoration": focus_restoration,
    "theme-adaptation": theme_adaptation,
}


# ── Engine ────────────────────────────────────────────────────


class RuleEngine:
    """Evaluate the orchestration rules against the newest state.

    Rules are independent and evaluated in a fixed order; each emits at most
    one :class:`ActionEvent` per cycle.  Thresholds can be changed at any
    time from another thread.
    """

    def __init__(self, thresholds: Thresholds | None = None) -> None:
        self._thresholds = thresholds or Thresholds()
        self._rules = dict(DEFAULT_RULES)
        self._lock = threading.Lock()

    # ── Thresholds ────────────────────────────────────────────

    def get_thresholds(self) -> Thresholds:
        with self._lock:
            return self._thresholds.model_copy()

    def update_threshold(self, name: str, value: float) -> bool:
        """Set threshold *name* to *value*.

        Unknown names, booleans and values outside [0, 1] are ignored.  Returns
        ``True`` when the threshold changed.
        """
        if name not in Thresholds.model_fields:
            logger.warning("rules.unknown_threshold", name=name)
            return False
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0.0 <= value <= 1.0:
            logger.warning("rules.threshold_out_of_range", name=name, value=value)
            return False
        with self._lock:
            self._thresholds = self._thresholds.model_copy(update={name: float(value)})
        logger.info("rules.threshold_updated", name=name, value=value)
        return True

    def list_rules(self) -> list[str]:
        return list(self._rules)

    # ── Evaluation ────────────────────────────────────────────

    def orchestrate(
        self,
        state: EmotionalState,
        previous_state: EmotionalState | None = None,
    ) -> list[ActionEvent]:
        """Return the actions fired by *state*, in rule order."""
        thresholds = self.get_thresholds()
        actions: list[ActionEvent] = []
        for name, rule in self._rules.items():
            action = rule(state, previous_state, thresholds)
            if action is None:
                continue
            actions.append(action)
            logger.info(
                "rules.action_fired",
                rule=name,
                type=action.type.value,
                priority=action.priority.value,
                triggered_by=action.triggered_by,
            )
        return actions
