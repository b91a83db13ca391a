# tests/unit/engine/test_counter_set.py
"""Tests for job-wide counters."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from linkverify.contracts import Classification
from linkverify.engine.counters import CounterSet, TaskCounters


class TestCounterSet:
    def test_snapshot_has_all_five_counters(self) -> None:
        snapshot = CounterSet().snapshot()
        assert list(snapshot) == list(Classification)
        assert set(snapshot.values()) == {0}

    def test_merge_adds_task_counts(self) -> None:
        counters = CounterSet()
        counters.merge(TaskCounters({Classification.REFERENCED: 2}))
        counters.merge(TaskCounters({Classification.REFERENCED: 3, Classification.IGNORED: 1}))
        snapshot = counters.snapshot()
        assert snapshot[Classification.REFERENCED] == 5
        assert snapshot[Classification.IGNORED] == 1

    def test_concurrent_merges_are_not_lost(self) -> None:
        counters = CounterSet()
        with ThreadPoolExecutor(max_workers=8) as pool:
            for _ in range(1000):
                pool.submit(counters.merge, TaskCounters({Classification.UNREFERENCED: 1}))
        assert counters.snapshot()[Classification.UNREFERENCED] == 1000

    def test_negative_count_rejected(self) -> None:
        with pytest.raises(ValueError, match="monotonic"):
            CounterSet().merge({Classification.REFERENCED: -1})

    def test_discard_zeroes_everything(self) -> None:
        counters = CounterSet()
        counters.merge(TaskCounters({Classification.UNDEFINED: 4}))
        counters.discard()
        assert counters.snapshot()[Classification.UNDEFINED] == 0
