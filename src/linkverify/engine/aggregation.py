# src/linkverify/engine/aggregation.py
"""Aggregation (reduce) stage.

All assertions for one node id arrive together, in no particular order.
The id is classified by whether it was defined and whether anything
referenced it:

    defined  referenced  ->  classification
    no       yes             UNDEFINED    (lost write; diagnostic emitted)
    yes      no              UNREFERENCED
    yes      yes             REFERENCED
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from itertools import groupby
from operator import attrgetter
from threading import Event
from typing import Protocol

from linkverify.contracts.enums import AssertionKind, Classification, DuplicatePolicy
from linkverify.contracts.records import Assertion
from linkverify.contracts.results import AggregationResult
from linkverify.engine.counters import TaskCounters
from linkverify.engine.expansion import TaskCancelled


class LineWriter(Protocol):
    def write_line(self, line: str) -> None: ...


def format_id(node_id: int) -> str:
    """Fixed-width lowercase hex, as used in diagnostic output."""
    return f"{node_id:016x}"


def format_diagnostic(node_id: int, referrers: Iterable[int]) -> str:
    """Render the tab-separated diagnostic line for an UNDEFINED id."""
    return f"{format_id(node_id)}\t{','.join(format_id(ref) for ref in referrers)}"


def classify(node_id: int, assertions: Iterable[Assertion]) -> AggregationResult:
    """Classify one node id from every assertion keyed to it.

    Raises:
        ValueError: If no assertions were supplied, or one is keyed to a
            different id.
    """
    definitions = 0
    referrers: list[int] = []
    for assertion in assertions:
        if assertion.node_id != node_id:
            raise ValueError(f"assertion for {assertion.node_id} grouped under {node_id}")
        if assertion.kind == AssertionKind.SELF:
            definitions += 1
        else:
            assert assertion.source_id is not None
            referrers.append(assertion.source_id)

    if definitions == 0 and referrers:
        classification = Classification.UNDEFINED
    elif definitions > 0 and not referrers:
        classification = Classification.UNREFERENCED
    elif definitions > 0:
        classification = Classification.REFERENCED
    else:
        # Keys only exist because something was asserted about them
        raise ValueError(f"no assertions for node {node_id}")

    return AggregationResult(
        node_id=node_id,
        classification=classification,
        referrers=tuple(referrers),
        definitions=definitions,
    )


@dataclass
class ReduceOutput:
    """Uncommitted output of one reduce attempt."""

    partition: int
    counters: TaskCounters = field(default_factory=TaskCounters)
    keys: int = 0
    diagnostics: int = 0


def reduce_partition(
    partition: int,
    assertions: Sequence[Assertion],
    writer: LineWriter,
    *,
    duplicate_policy: DuplicatePolicy = DuplicatePolicy.LENIENT,
    cancel: Event | None = None,
) -> ReduceOutput:
    """Group a partition's assertions by id and classify each id.

    Keys are processed in ascending order. The sort is stable, so referrers
    keep their arrival order within a key.

    Raises:
        TaskCancelled: If cancel is set between keys.
    """
    output = ReduceOutput(partition=partition)
    ordered = sorted(assertions, key=attrgetter("node_id"))

    for node_id, group in groupby(ordered, key=attrgetter("node_id")):
        if cancel is not None and cancel.is_set():
            raise TaskCancelled(f"reduce partition {partition} cancelled")
        result = classify(node_id, group)
        output.keys += 1
        output.counters[result.classification] += 1

        if result.classification == Classification.UNDEFINED:
            writer.write_line(format_diagnostic(node_id, result.referrers))
            output.diagnostics += 1

        if duplicate_policy == DuplicatePolicy.CORRUPT and result.definitions > 1:
            output.counters[Classification.CORRUPT] += 1

    return output
