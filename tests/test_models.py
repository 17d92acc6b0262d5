"""Tests for data models, settings and the replay CLI."""

from __future__ import annotations

import io
import json
import math

import pytest
from pydantic import ValidationError

from empathos.config import Settings
from empathos.main import iter_cycles, replay
from empathos.models import (
    ActionEvent,
    ActionPriority,
    ActionType,
    BehavioralReading,
    CognitiveStateModel,
    FacialReading,
    WearableReading,
    parse_reading,
)


class TestReadings:
    def test_parse_dispatches_on_kind(self):
        reading = parse_reading({"kind": "facial", "confidence": 0.9, "emotions": {"neutral": 0.7}})
        assert isinstance(reading, FacialReading)
        assert reading.emotions.neutral == 0.7
        assert reading.gaze is None

    def test_wearable_metrics_optional(self):
        reading = parse_reading({"kind": "wearable", "confidence": 0.5})
        assert isinstance(reading, WearableReading)
        assert reading.heart_rate is None

    @pytest.mark.parametrize("confidence", [1.2, -0.1, math.nan, math.inf])
    def test_confidence_must_be_unit_interval(self, confidence):
        with pytest.raises(ValidationError):
            parse_reading({"kind": "vocal", "confidence": confidence, "emotion": "calm"})

    @pytest.mark.parametrize(
        "data",
        [
            {"kind": "facial", "confidence": 1.0, "gaze": {"x": math.nan, "y": 0.5}},
            {"kind": "facial", "confidence": 1.0, "gaze": {"x": 0.5, "y": math.inf}},
            {"kind": "vocal", "confidence": 0.5, "pitch": math.nan},
            {"kind": "wearable", "confidence": 0.5, "skin_temperature": -math.inf},
        ],
    )
    def test_non_finite_metrics_are_rejected(self, data):
        with pytest.raises(ValidationError):
            parse_reading(data)

    def test_missing_behavioral_metric(self):
        with pytest.raises(ValidationError):
            parse_reading({"kind": "behavioral", "confidence": 0.5, "typing_speed": 60})

    def test_unknown_kind(self):
        with pytest.raises(ValidationError):
            parse_reading({"kind": "eeg", "confidence": 0.5})

    def test_readings_are_immutable(self):
        reading = BehavioralReading(
            confidence=0.5, typing_speed=60, error_rate=0.1,
            mouse_movements=10, click_rate=2, pause_duration=800,
        )
        with pytest.raises(ValidationError):
            reading.confidence = 0.9


class TestDerivedModels:
    def test_cognitive_model_rejects_out_of_range(self):
        with pytest.raises(ValidationError):
            CognitiveStateModel(focus=1.5, stress=0.3, confusion=0.2, flow=0.4)

    def test_action_event_defaults(self):
        action = ActionEvent(
            type=ActionType.ASSIST, priority=ActionPriority.MEDIUM, triggered_by="x:y=0.10",
        )
        assert action.id
        assert action.timestamp.tzinfo is not None
        assert action.payload == {}
        assert action.model_dump(mode="json")["type"] == "assist"


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.history_capacity == 1000
        assert settings.action_history_capacity == 100
        assert settings.stress_threshold == 0.7
        assert settings.deep_work_threshold == 0.75
        assert settings.cycle_interval_seconds == 2.0

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("EMPATHOS_STRESS_THRESHOLD", "0.85")
        monkeypatch.setenv("EMPATHOS_ENABLE_WEARABLE", "true")
        settings = Settings()
        assert settings.stress_threshold == 0.85
        assert settings.enable_wearable is True

    def test_threshold_range_validated(self):
        with pytest.raises(ValidationError):
            Settings(deep_work_threshold=1.5)


class TestReplay:
    def test_iter_cycles_skips_malformed_readings(self):
        lines = io.StringIO(
            '[]\n'
            '\n'
            '{"context": "standup", "readings": ['
            '{"kind": "vocal", "confidence": 0.6, "emotion": "stressed"},'
            '{"kind": "vocal", "confidence": 3}]}\n'
        )
        cycles = list(iter_cycles(lines))
        assert len(cycles) == 2
        assert cycles[0] == ([], None)
        readings, context = cycles[1]
        assert context == "standup"
        assert len(readings) == 1

    def test_iter_cycles_skips_malformed_lines(self):
        lines = io.StringIO(
            '{not json\n'
            '42\n'
            '{"readings": "vocal"}\n'
            '{"context": 7, "readings": []}\n'
            '[{"kind": "vocal", "confidence": 0.6, "emotion": "calm"}]\n'
        )
        cycles = list(iter_cycles(lines))
        assert len(cycles) == 1
        readings, context = cycles[0]
        assert context is None
        assert [r.kind for r in readings] == ["vocal"]

    def test_replay_continues_past_bad_line(self):
        source = io.StringIO('[]\n{oops\n[]\n')
        out = io.StringIO()
        assert replay(source, out) == 2
        assert len(out.getvalue().splitlines()) == 2

    def test_replay_writes_one_line_per_cycle(self):
        typing = {
            "kind": "behavioral", "confidence": 0.8, "typing_speed": 80, "error_rate": 0.05,
            "mouse_movements": 50, "click_rate": 5, "pause_duration": 1000,
        }
        source = io.StringIO(json.dumps([typing]) + "\n[]\n")
        out = io.StringIO()

        assert replay(source, out) == 2

        records = [json.loads(line) for line in out.getvalue().splitlines()]
        assert [a["type"] for a in records[0]["actions"]] == ["deep-work", "ui-theme"]
        assert records[0]["model"]["sources"] == ["behavioral"]
        assert [a["type"] for a in records[1]["actions"]] == ["ui-theme"]
        assert records[1]["state"]["focus"] == 0.5
