# src/linkverify/engine/expansion.py
"""Expansion (map) stage.

Each node becomes a SELF assertion for its own id and, if it has a
predecessor, a REFERENCE assertion keyed by the predecessor id. With an
active flushed filter, nodes that are not yet durable emit nothing and are
counted as IGNORED.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from threading import Event

from linkverify.contracts.enums import Classification
from linkverify.contracts.records import Assertion, Node
from linkverify.core.flushed import FlushedFilter, decode_flushed
from linkverify.engine.counters import TaskCounters
from linkverify.engine.shuffle import Shuffle, partition_for


class TaskCancelled(Exception):
    """Raised inside a task when the job has been cancelled."""


def expand(node: Node, flushed: FlushedFilter | None, counters: TaskCounters) -> Iterator[Assertion]:
    """Expand one node into its assertions.

    Args:
        node: Node read from the store
        flushed: Active filter, or None to process every node
        counters: Task-local counters (IGNORED is incremented here)
    """
    if flushed is not None and not flushed.is_durable(node):
        counters[Classification.IGNORED] += 1
        return

    yield Assertion.self_of(node.id)

    if node.has_predecessor:
        yield Assertion.reference(node.prev, node.id)


@dataclass
class MapOutput:
    """Uncommitted output of one map attempt."""

    split: int
    buckets: list[list[Assertion]]
    counters: TaskCounters = field(default_factory=TaskCounters)
    nodes_read: int = 0


def expand_split(
    split: int,
    nodes: Iterable[Node],
    *,
    flushed_entries: Iterable[str],
    shuffle: Shuffle,
    cancel: Event | None = None,
) -> MapOutput:
    """Run one map attempt over an input split.

    The broadcast filter is decoded once per attempt. Output is held in
    attempt-local buckets; the caller commits it only if the attempt
    succeeds.

    Raises:
        TaskCancelled: If cancel is set while the split is being read.
        ConfigurationError: If the broadcast filter is malformed.
    """
    flushed = decode_flushed(flushed_entries)
    output = MapOutput(split=split, buckets=shuffle.new_buckets())
    num_partitions = shuffle.num_partitions

    for node in nodes:
        if cancel is not None and cancel.is_set():
            raise TaskCancelled(f"map split {split} cancelled")
        output.nodes_read += 1
        for assertion in expand(node, flushed, output.counters):
            output.buckets[partition_for(assertion.node_id, num_partitions)].append(assertion)

    return output
