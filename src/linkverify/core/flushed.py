# src/linkverify/core/flushed.py
"""Flushed-set loading and broadcast encoding.

A flushed checkpoint records, per writer, the highest sequence count known
to be durably visible. When verifying concurrently with a generator, nodes
at or beyond that count are skipped: their predecessors may legitimately
not be visible yet.

The filter is broadcast to every map task as a list of "tag:count"
strings, so tags must not contain ":".
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING

from linkverify.contracts.errors import ConfigurationError
from linkverify.contracts.records import FlushedCheckpoint, Node
from linkverify.core.logging import get_logger

if TYPE_CHECKING:
    from linkverify.core.store import NodeStore

logger = get_logger(__name__)

ENTRY_SEPARATOR = ":"


class FlushedFilter(Mapping[str, int]):
    """Read-only client_tag -> flushed_count lookup shared by all map tasks."""

    def __init__(self, checkpoints: Mapping[str, int]) -> None:
        self._counts: Mapping[str, int] = MappingProxyType(dict(checkpoints))

    @classmethod
    def from_checkpoints(cls, checkpoints: Iterable[FlushedCheckpoint]) -> FlushedFilter:
        """Build a filter, rejecting duplicate tags."""
        counts: dict[str, int] = {}
        for checkpoint in checkpoints:
            if checkpoint.client_tag in counts:
                raise ConfigurationError(f"Duplicate flushed checkpoint for client '{checkpoint.client_tag}'")
            counts[checkpoint.client_tag] = checkpoint.flushed_count
        return cls(counts)

    def __getitem__(self, client_tag: str) -> int:
        return self._counts[client_tag]

    def __iter__(self) -> Iterator[str]:
        return iter(self._counts)

    def __len__(self) -> int:
        return len(self._counts)

    def __repr__(self) -> str:
        return f"FlushedFilter({dict(self._counts)!r})"

    def is_durable(self, node: Node) -> bool:
        """True if the node was written before its client's last flush.

        Unknown clients and nodes without a client tag are never durable.
        """
        if node.client_tag is None or node.seq_count is None:
            return False
        flushed_count = self._counts.get(node.client_tag)
        if flushed_count is None:
            return False
        return node.seq_count < flushed_count


def load_flushed(store: NodeStore) -> FlushedFilter | None:
    """Read every flushed checkpoint into memory.

    Returns:
        The filter, or None if the table is empty (verification then runs
        unfiltered).

    Raises:
        StorageAccessError: If the table cannot be read. There is no
            partial mode.
    """
    flushed = FlushedFilter.from_checkpoints(store.read_flushed())
    if not flushed:
        logger.warning("flushed_table_empty", table=store.tables.flushed.name)
        return None
    logger.info("flushed_filter_loaded", clients=len(flushed))
    return flushed


def encode_flushed(flushed: FlushedFilter | None) -> list[str]:
    """Encode a filter as "tag:count" entries for the job configuration.

    Raises:
        ConfigurationError: If a tag contains the separator.
    """
    if flushed is None:
        return []
    entries = []
    for client_tag, count in sorted(flushed.items()):
        if ENTRY_SEPARATOR in client_tag:
            raise ConfigurationError(f"Client tag {client_tag!r} contains '{ENTRY_SEPARATOR}' and cannot be broadcast")
        entries.append(f"{client_tag}{ENTRY_SEPARATOR}{count}")
    return entries


def decode_flushed(entries: Iterable[str]) -> FlushedFilter | None:
    """Parse "tag:count" entries back into a filter.

    Returns:
        The filter, or None for an empty entry list.

    Raises:
        ConfigurationError: On a malformed entry or a duplicate tag.
    """
    checkpoints = []
    for entry in entries:
        client_tag, sep, raw_count = entry.partition(ENTRY_SEPARATOR)
        if not sep or not client_tag or ENTRY_SEPARATOR in raw_count:
            raise ConfigurationError(f"Malformed flushed entry {entry!r}: expected 'tag{ENTRY_SEPARATOR}count'")
        try:
            count = int(raw_count)
        except ValueError:
            raise ConfigurationError(f"Malformed flushed entry {entry!r}: count is not an integer") from None
        if count < 0:
            raise ConfigurationError(f"Malformed flushed entry {entry!r}: count is negative")
        checkpoints.append(FlushedCheckpoint(client_tag=client_tag, flushed_count=count))
    if not checkpoints:
        return None
    return FlushedFilter.from_checkpoints(checkpoints)
