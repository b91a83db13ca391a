# src/linkverify/engine/counters.py
"""Job-wide classification counters.

Tasks count into a private collections.Counter and merge it into the
shared CounterSet only when the task attempt commits, so a failed or
retried attempt never contributes.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping
from threading import Lock

from linkverify.contracts.enums import Classification

TaskCounters = Counter[Classification]


class CounterSet:
    """Lock-protected accumulators, one per Classification."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._counts: Counter[Classification] = Counter()

    def merge(self, task_counters: Mapping[Classification, int]) -> None:
        """Add a committed task's counts."""
        with self._lock:
            for name, amount in task_counters.items():
                if amount < 0:
                    raise ValueError(f"counters are monotonic, got {amount} for {name}")
                self._counts[name] += amount

    def snapshot(self) -> dict[Classification, int]:
        """All five counters, zero-filled, in declaration order."""
        with self._lock:
            return {name: self._counts[name] for name in Classification}

    def discard(self) -> None:
        """Drop everything counted so far (cancelled runs are all-or-nothing)."""
        with self._lock:
            self._counts.clear()
