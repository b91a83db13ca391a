# tests/conftest.py
"""Shared test fixtures and helpers.

Stores are file-backed SQLite databases under tmp_path: map and reduce
tasks run on worker threads, and an in-memory SQLite database is private
to one connection.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import os
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path

import pytest
from hypothesis import Phase, Verbosity, settings

from linkverify.contracts import FlushedCheckpoint, Node
from linkverify.core.config import EngineSettings, LinkVerifySettings, StoreSettings
from linkverify.core.logging import configure_logging
from linkverify.core.store import NodeStore
from tests.fixtures.store import write_checkpoints, write_nodes


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging() -> None:
    configure_logging(json_output=False, level="WARNING")


@pytest.fixture
def store_url(tmp_path: Path) -> str:
    """URL of an empty, file-backed SQLite store."""
    return f"sqlite:///{tmp_path / 'nodes.db'}"


@pytest.fixture
def node_store(store_url: str) -> Iterator[NodeStore]:
    """An open store with both tables created."""
    store = NodeStore(store_url, create_tables=True)
    yield store
    store.close()


SeedStore = Callable[..., str]


@pytest.fixture
def seed_store(store_url: str) -> SeedStore:
    """Populate the store and return its URL.

    Usage:
        url = seed_store([Node(id=1), Node(id=2, prev=1)], checkpoints=[...])
    """

    def _seed(nodes: Iterable[Node], checkpoints: Iterable[FlushedCheckpoint] = ()) -> str:
        with NodeStore(store_url, create_tables=True) as store:
            write_nodes(store, nodes)
            write_checkpoints(store, checkpoints)
        return store_url

    return _seed


@pytest.fixture
def make_settings(store_url: str) -> Callable[..., LinkVerifySettings]:
    """Build settings pointing at the test store, with fast retries."""

    def _make(**engine_overrides: object) -> LinkVerifySettings:
        engine_values: dict[str, object] = {
            "input_splits": 3,
            "map_workers": 2,
            "reduce_workers": 2,
            "task_attempts": 2,
            "retry_initial_delay_seconds": 0.01,
            "retry_max_delay_seconds": 0.02,
        }
        engine_values.update(engine_overrides)
        return LinkVerifySettings(
            store=StoreSettings(url=store_url),
            engine=EngineSettings(**engine_values),  # type: ignore[arg-type]
        )

    return _make


# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
