# src/linkverify/core/store/schema.py
"""SQLAlchemy table definitions for the node store.

Uses SQLAlchemy Core (not ORM) for explicit control over scans and
compatibility with multiple database backends. Table names are
configurable, so tables are built per store rather than at import time.
"""

from dataclasses import dataclass

from sqlalchemy import BigInteger, CheckConstraint, Column, MetaData, Table, Text


@dataclass(frozen=True)
class StoreTables:
    """The two tables a verification run reads."""

    metadata: MetaData
    nodes: Table
    flushed: Table


# Columns a node table must carry for each scan projection
NODE_PREV_COLUMNS: tuple[str, ...] = ("id", "prev")
NODE_ALL_COLUMNS: tuple[str, ...] = ("id", "prev", "client", "count")
FLUSHED_COLUMNS: tuple[str, ...] = ("client", "count")


def define_tables(node_table: str = "ci_nodes", flushed_table: str = "ci_flushed") -> StoreTables:
    """Build table definitions bound to a fresh MetaData.

    Args:
        node_table: Name of the linked-list node table
        flushed_table: Name of the flushed checkpoint table
    """
    metadata = MetaData()

    nodes = Table(
        node_table,
        metadata,
        Column("id", BigInteger, primary_key=True, autoincrement=False),
        # -1 marks the head of a list (no predecessor)
        Column("prev", BigInteger, nullable=False, server_default="-1"),
        # Writer identity and per-writer sequence number, used for flushed filtering
        Column("client", Text),
        Column("count", BigInteger),
        CheckConstraint("id >= 0", name=f"ck_{node_table}_id_nonnegative"),
    )

    flushed = Table(
        flushed_table,
        metadata,
        Column("client", Text, primary_key=True),
        Column("count", BigInteger, nullable=False),
    )

    return StoreTables(metadata=metadata, nodes=nodes, flushed=flushed)
