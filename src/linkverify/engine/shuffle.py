# src/linkverify/engine/shuffle.py
"""Key routing and the map/reduce shuffle barrier.

Every assertion for one node id must reach the same reduce task. The
partitioner is deterministic across processes and interpreter runs, so
Python's salted hash() is never used for routing.
"""

from __future__ import annotations

from collections.abc import Sequence
from threading import Lock

from linkverify.contracts.records import Assertion

_INT32_MASK = 0xFFFFFFFF
_INT31_MAX = 0x7FFFFFFF


def partition_for(node_id: int, num_partitions: int) -> int:
    """Route a node id to a reduce partition.

    Folds the 64-bit id into 32 bits (high word XOR low word), clears the
    sign bit and takes the remainder.
    """
    if num_partitions < 1:
        raise ValueError(f"num_partitions must be >= 1, got {num_partitions}")
    folded = (node_id ^ (node_id >> 32)) & _INT32_MASK
    return (folded & _INT31_MAX) % num_partitions


class Shuffle:
    """Per-partition assertion buffers filled by committed map tasks.

    Reduce tasks may only read once every map task has committed.
    """

    def __init__(self, num_partitions: int) -> None:
        if num_partitions < 1:
            raise ValueError(f"num_partitions must be >= 1, got {num_partitions}")
        self._lock = Lock()
        self._partitions: list[list[Assertion]] = [[] for _ in range(num_partitions)]
        self._sealed = False

    @property
    def num_partitions(self) -> int:
        return len(self._partitions)

    def new_buckets(self) -> list[list[Assertion]]:
        """Empty attempt-local buckets, one per partition."""
        return [[] for _ in range(self.num_partitions)]

    def commit(self, buckets: Sequence[Sequence[Assertion]]) -> int:
        """Append a successful map attempt's buckets. Returns assertions committed."""
        if len(buckets) != self.num_partitions:
            raise ValueError(f"expected {self.num_partitions} buckets, got {len(buckets)}")
        with self._lock:
            if self._sealed:
                raise RuntimeError("shuffle is sealed; map output arrived after the barrier")
            for partition, bucket in zip(self._partitions, buckets, strict=True):
                partition.extend(bucket)
        return sum(len(bucket) for bucket in buckets)

    def seal(self) -> None:
        """Close the map side. Called once at the barrier."""
        with self._lock:
            self._sealed = True

    def partition(self, index: int) -> Sequence[Assertion]:
        with self._lock:
            if not self._sealed:
                raise RuntimeError("shuffle read before the map phase completed")
            return self._partitions[index]

    def release(self, index: int) -> None:
        """Free a partition's buffer once its reduce task has committed."""
        with self._lock:
            self._partitions[index] = []
