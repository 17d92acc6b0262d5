"""Tests for the affect mapper."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from empathos.affect.mapper import AffectMapper, derive_emotional_state
from empathos.history.store import HistoryStore
from empathos.models import CognitiveStateModel, SourceKind


def _model(**overrides) -> CognitiveStateModel:
    values = {"focus": 0.5, "stress": 0.3, "confusion": 0.2, "flow": 0.4}
    values.update(overrides)
    return CognitiveStateModel(**values)


class TestDeriveEmotionalState:
    def test_steady_typing_model(self):
        model = CognitiveStateModel(
            focus=1.0, stress=0.375, confusion=0.38, flow=1.0,
            confidence=0.8, sources=(SourceKind.BEHAVIORAL,),
        )
        state = derive_emotional_state(model)
        assert state.valence == pytest.approx(0.623, abs=1e-3)
        assert state.arousal == pytest.approx(0.625)
        assert (state.focus, state.stress, state.confusion, state.flow) == (1.0, 0.375, 0.38, 1.0)

    def test_baseline_model(self):
        state = derive_emotional_state(_model())
        assert state.valence == pytest.approx(0.14)
        assert state.arousal == pytest.approx(0.38)

    @pytest.mark.parametrize(
        ("overrides", "valence", "arousal"),
        [
            ({"focus": 1, "stress": 1, "confusion": 1, "flow": 0}, -1.0, 1.0),
            ({"focus": 0, "stress": 0, "confusion": 0, "flow": 1}, 1.0, 0.0),
        ],
    )
    def test_extremes_stay_in_range(self, overrides, valence, arousal):
        state = derive_emotional_state(_model(**overrides))
        assert state.valence == pytest.approx(valence)
        assert state.arousal == pytest.approx(arousal)
        assert -1.0 <= state.valence <= 1.0
        assert 0.0 <= state.arousal <= 1.0

    def test_context_and_timestamp(self):
        ts = datetime(2026, 3, 1, 9, 30, tzinfo=UTC)
        state = derive_emotional_state(_model(), context="editor", timestamp=ts)
        assert state.context == "editor"
        assert state.timestamp == ts

    def test_pure(self):
        ts = datetime(2026, 3, 1, 9, 30, tzinfo=UTC)
        assert derive_emotional_state(_model(), timestamp=ts) == derive_emotional_state(_model(), timestamp=ts)


class TestAffectMapper:
    def test_appends_to_history(self):
        history = HistoryStore(capacity=10)
        mapper = AffectMapper(history)
        state = mapper.to_emotional_state(_model(), context="call")
        assert history.get_recent() == [state]
        assert state.context == "call"
