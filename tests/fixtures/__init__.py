# tests/fixtures/__init__.py
"""Shared helpers for linkverify tests."""

from tests.fixtures.store import make_chain, write_checkpoints, write_nodes

__all__ = [
    "make_chain",
    "write_checkpoints",
    "write_nodes",
]
