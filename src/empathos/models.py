"""Shared Pydantic models used across the engine."""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


def utcnow() -> datetime:
    return datetime.now(UTC)


# ── Enums ─────────────────────────────────────────────────────

class SourceKind(str, Enum):
    """Detector categories.  Declaration order is the fusion order."""
    FACIAL = "facial"
    VOCAL = "vocal"
    BEHAVIORAL = "behavioral"
    WEARABLE = "wearable"


class VocalEmotion(str, Enum):
    CALM = "calm"
    EXCITED = "excited"
    STRESSED = "stressed"
    NEUTRAL = "neutral"


class ActionType(str, Enum):
    UI_THEME = "ui-theme"
    NOTIFICATION = "notification"
    DEEP_WORK = "deep-work"
    ASSIST = "assist"
    SUGGESTION = "suggestion"


class ActionPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# ── Source readings ───────────────────────────────────────────

Unit = Annotated[float, Field(ge=0.0, le=1.0)]


class BaseReading(BaseModel):
    """Fields shared by every detector reading."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    confidence: float = Field(ge=0.0, le=1.0)
    timestamp: datetime = Field(default_factory=utcnow)


class FacialEmotions(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    neutral: Unit = 0.0
    happy: Unit = 0.0
    sad: Unit = 0.0
    angry: Unit = 0.0
    fearful: Unit = 0.0
    disgusted: Unit = 0.0
    surprised: Unit = 0.0


class Gaze(BaseModel):
    """Normalised gaze point; (0.5, 0.5) is the screen centre."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    x: float
    y: float


class FacialReading(BaseReading):
    kind: Literal["facial"] = "facial"
    emotions: FacialEmotions = Field(default_factory=FacialEmotions)
    gaze: Gaze | None = None


class VocalReading(BaseReading):
    kind: Literal["vocal"] = "vocal"
    emotion: VocalEmotion = VocalEmotion.NEUTRAL
    pitch: float | None = None
    energy: float | None = None
    speech_rate: float | None = None


class BehavioralReading(BaseReading):
    kind: Literal["behavioral"] = "behavioral"
    typing_speed: float = Field(ge=0.0)  # words per minute
    error_rate: float = Field(ge=0.0, le=1.0)
    mouse_movements: float = Field(ge=0.0)  # per minute
    click_rate: float = Field(ge=0.0)  # per minute
    pause_duration: float = Field(ge=0.0)  # mean pause, ms


class WearableReading(BaseReading):
    kind: Literal["wearable"] = "wearable"
    heart_rate: float | None = Field(None, ge=0.0)  # bpm
    heart_rate_variability: float | None = Field(None, ge=0.0)  # ms
    skin_temperature: float | None = None  # °C


SourceReading = Annotated[
    Union[FacialReading, VocalReading, BehavioralReading, WearableReading],
    Field(discriminator="kind"),
]

_READING_ADAPTER: TypeAdapter[SourceReading] = TypeAdapter(SourceReading)


def parse_reading(data: Mapping[str, Any]) -> SourceReading:
    """Validate a raw mapping into the matching reading type.

    Raises :class:`pydantic.ValidationError` for unknown kinds, missing
    metrics, out-of-range confidence or non-finite values.
    """
    return _READING_ADAPTER.validate_python(data)


# ── Derived state ─────────────────────────────────────────────

class CognitiveStateModel(BaseModel):
    """Fused estimate produced once per cycle by the fusion engine."""

    model_config = ConfigDict(frozen=True)

    focus: Unit
    stress: Unit
    confusion: Unit
    flow: Unit
    confidence: Unit = 0.0
    sources: tuple[SourceKind, ...] = ()


class EmotionalState(BaseModel):
    """Public state stored in the history: cognitive dimensions plus affect."""

    model_config = ConfigDict(frozen=True)

    focus: Unit
    stress: Unit
    confusion: Unit
    flow: Unit
    valence: float = Field(ge=-1.0, le=1.0)
    arousal: Unit
    timestamp: datetime = Field(default_factory=utcnow)
    context: str | None = None


class ActionEvent(BaseModel):
    """An action emitted by the rule engine for subscribers to act upon."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    type: ActionType
    priority: ActionPriority
    payload: dict[str, Any] = Field(default_factory=dict)
    triggered_by: str
    timestamp: datetime = Field(default_factory=utcnow)


class Thresholds(BaseModel):
    """Rule thresholds, adjustable at runtime through the rule engine."""

    stress: Unit = 0.7
    deep_work: Unit = 0.75
    high_confusion: Unit = 0.6
    low_focus: Unit = 0.3
