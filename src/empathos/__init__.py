"""empathos — multi-source behavioral-state fusion and environment orchestration."""

from empathos.models import (
    ActionEvent,
    ActionPriority,
    ActionType,
    BehavioralReading,
    CognitiveStateModel,
    EmotionalState,
    FacialReading,
    SourceKind,
    Thresholds,
    VocalReading,
    WearableReading,
    parse_reading,
)
from empathos.pipeline import CycleResult, StatePipeline, create_pipeline

__all__ = [
    "ActionEvent",
    "ActionPriority",
    "ActionType",
    "BehavioralReading",
    "CognitiveStateModel",
    "CycleResult",
    "EmotionalState",
    "FacialReading",
    "SourceKind",
    "StatePipeline",
    "Thresholds",
    "VocalReading",
    "WearableReading",
    "create_pipeline",
    "parse_reading",
]
