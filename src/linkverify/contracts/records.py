"""Immutable records flowing through a verification run.

Node and FlushedCheckpoint are read from the store and never modified.
Assertion only lives between the expansion and aggregation stages.
"""

from __future__ import annotations

from dataclasses import dataclass

from linkverify.contracts.enums import AssertionKind

NO_PREDECESSOR = -1


@dataclass(frozen=True, slots=True)
class Node:
    """One element of the linked list.

    client_tag and seq_count are None when the scan projected only the
    predecessor pointer.
    """

    id: int
    prev: int = NO_PREDECESSOR
    client_tag: str | None = None
    seq_count: int | None = None

    @property
    def has_predecessor(self) -> bool:
        return self.prev >= 0


@dataclass(frozen=True, slots=True)
class Assertion:
    """A claim about a node id, keyed by node_id for the shuffle.

    SELF: node_id exists.
    REFERENCE: source_id's predecessor pointer names node_id.
    """

    node_id: int
    kind: AssertionKind
    source_id: int | None = None

    def __post_init__(self) -> None:
        if self.kind == AssertionKind.REFERENCE and self.source_id is None:
            raise ValueError(f"reference assertion for {self.node_id} requires a source_id")
        if self.kind == AssertionKind.SELF and self.source_id is not None:
            raise ValueError(f"self assertion for {self.node_id} must not carry a source_id")

    @classmethod
    def self_of(cls, node_id: int) -> Assertion:
        return cls(node_id=node_id, kind=AssertionKind.SELF)

    @classmethod
    def reference(cls, target_id: int, source_id: int) -> Assertion:
        return cls(node_id=target_id, kind=AssertionKind.REFERENCE, source_id=source_id)


@dataclass(frozen=True, slots=True)
class FlushedCheckpoint:
    """Highest sequence count known to be durably visible for one client."""

    client_tag: str
    flushed_count: int
