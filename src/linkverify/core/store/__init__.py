"""Node store: table definitions and read access."""

from linkverify.core.store.database import NodeStore
from linkverify.core.store.schema import StoreTables, define_tables

__all__ = ["NodeStore", "StoreTables", "define_tables"]
