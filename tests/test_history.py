"""Tests for the bounded history store."""

from __future__ import annotations

import threading
from datetime import timedelta

import pytest

from empathos.history.store import BoundedBuffer, HistoryStore
from empathos.models import utcnow


class TestBoundedBuffer:
    def test_rejects_non_positive_capacity(self):
        with pytest.raises(ValueError, match="capacity"):
            BoundedBuffer(0)

    def test_evicts_oldest_first(self):
        buf: BoundedBuffer[int] = BoundedBuffer(3)
        buf.extend(range(5))
        assert buf.recent() == [2, 3, 4]
        assert len(buf) == 3
        assert buf.latest() == 4

    def test_recent_limits(self):
        buf: BoundedBuffer[int] = BoundedBuffer(10)
        buf.extend(range(4))
        assert buf.recent(2) == [2, 3]
        assert buf.recent(10) == [0, 1, 2, 3]
        assert buf.recent(0) == []

    def test_recent_returns_a_copy(self):
        buf: BoundedBuffer[int] = BoundedBuffer(3)
        buf.append(1)
        snapshot = buf.recent()
        snapshot.append(99)
        assert buf.recent() == [1]

    def test_concurrent_appends_respect_capacity(self):
        buf: BoundedBuffer[int] = BoundedBuffer(50)

        def writer(offset: int) -> None:
            for i in range(200):
                buf.append(offset + i)

        threads = [threading.Thread(target=writer, args=(n * 1000,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(buf) == 50


class TestHistoryStore:
    def test_capacity_plus_one_evicts_oldest(self, make_state):
        store = HistoryStore(capacity=3)
        states = [make_state(focus=f) for f in (0.1, 0.2, 0.3, 0.4)]
        for s in states:
            store.append(s)
        assert store.get_recent() == states[1:]
        assert len(store) == 3

    def test_get_recent_limit_is_chronological(self, make_state):
        store = HistoryStore()
        states = [make_state(focus=f) for f in (0.1, 0.2, 0.3)]
        for s in states:
            store.append(s)
        assert store.get_recent(2) == states[1:]
        assert store.latest() == states[-1]

    def test_default_capacity(self):
        assert HistoryStore().capacity == 1000

    def test_average_over_window(self, make_state):
        now = utcnow()
        store = HistoryStore()
        store.append(make_state(focus=0.2, stress=0.1, valence=-0.3, arousal=0.2,
                                timestamp=now - timedelta(seconds=30)))
        store.append(make_state(focus=0.5, stress=0.4, valence=0.0, arousal=0.5,
                                timestamp=now - timedelta(seconds=20)))
        store.append(make_state(focus=0.8, stress=0.7, valence=0.6, arousal=0.8,
                                timestamp=now - timedelta(seconds=10)))

        avg = store.get_average_state(60, now=now)
        assert avg is not None
        assert avg.focus == pytest.approx(0.5)
        assert avg.stress == pytest.approx(0.4)
        assert avg.valence == pytest.approx(0.1)
        assert avg.arousal == pytest.approx(0.5)
        assert avg.confusion == pytest.approx(0.2)
        assert avg.flow == pytest.approx(0.4)
        assert avg.timestamp == now

    def test_average_excludes_states_outside_window(self, make_state):
        now = utcnow()
        store = HistoryStore()
        store.append(make_state(focus=0.0, timestamp=now - timedelta(minutes=10)))
        store.append(make_state(focus=0.9, timestamp=now - timedelta(seconds=5)))
        avg = store.get_average_state(300, now=now)
        assert avg is not None
        assert avg.focus == pytest.approx(0.9)

    def test_average_of_empty_window_is_none(self, make_state):
        now = utcnow()
        store = HistoryStore()
        assert store.get_average_state(now=now) is None
        store.append(make_state(timestamp=now - timedelta(seconds=301)))
        assert store.get_average_state(300, now=now) is None

    def test_clear(self, make_state):
        store = HistoryStore()
        store.append(make_state())
        store.clear()
        assert store.get_recent() == []
        assert store.latest() is None
