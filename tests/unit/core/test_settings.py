# tests/unit/core/test_settings.py
"""Tests for configuration loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from linkverify.contracts import DuplicatePolicy
from linkverify.core.config import (
    EngineSettings,
    LinkVerifySettings,
    StoreSettings,
    default_settings,
    load_settings,
    render_settings,
)


class TestDefaults:
    def test_default_settings_are_valid(self) -> None:
        settings = default_settings()
        assert settings.store.node_table == "ci_nodes"
        assert settings.store.flushed_table == "ci_flushed"
        assert settings.engine.speculative_execution is False
        assert settings.engine.duplicate_policy == DuplicatePolicy.LENIENT

    def test_settings_are_frozen(self) -> None:
        settings = default_settings()
        with pytest.raises(ValidationError):
            settings.engine.input_splits = 2  # type: ignore[misc]


class TestValidation:
    def test_speculative_execution_rejected(self) -> None:
        with pytest.raises(ValidationError, match="speculative_execution cannot be enabled"):
            EngineSettings(speculative_execution=True)

    def test_zero_splits_rejected(self) -> None:
        with pytest.raises(ValidationError):
            EngineSettings(input_splits=0)

    def test_retry_delay_order(self) -> None:
        with pytest.raises(ValidationError, match="cannot exceed"):
            EngineSettings(retry_initial_delay_seconds=5.0, retry_max_delay_seconds=1.0)

    def test_table_names_must_be_identifiers(self) -> None:
        with pytest.raises(ValidationError, match="invalid table name"):
            StoreSettings(node_table="nodes; DROP TABLE x")

    def test_tables_must_differ(self) -> None:
        with pytest.raises(ValidationError, match="must differ"):
            StoreSettings(node_table="t", flushed_table="t")

    def test_unknown_top_level_key_rejected(self) -> None:
        with pytest.raises(ValidationError):
            LinkVerifySettings(unexpected={})  # type: ignore[call-arg]


class TestLoadSettings:
    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "nope.yaml")

    def test_loads_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "store": {"url": "sqlite:///x.db", "node_table": "nodes"},
                    "engine": {"input_splits": 16, "duplicate_policy": "corrupt"},
                }
            )
        )
        settings = load_settings(path)
        assert settings.store.url == "sqlite:///x.db"
        assert settings.store.node_table == "nodes"
        assert settings.engine.input_splits == 16
        assert settings.engine.duplicate_policy == DuplicatePolicy.CORRUPT

    def test_env_var_expansion(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NODE_DB", "sqlite:///from-env.db")
        monkeypatch.delenv("FLUSHED_TABLE", raising=False)
        path = tmp_path / "settings.yaml"
        path.write_text("store:\n  url: ${NODE_DB}\n  flushed_table: ${FLUSHED_TABLE:-checkpoints}\n")
        settings = load_settings(path)
        assert settings.store.url == "sqlite:///from-env.db"
        assert settings.store.flushed_table == "checkpoints"

    def test_environment_overrides_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LINKVERIFY_ENGINE__MAP_WORKERS", "9")
        path = tmp_path / "settings.yaml"
        path.write_text("engine:\n  map_workers: 2\n")
        assert load_settings(path).engine.map_workers == 9

    def test_environment_applies_without_file(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LINKVERIFY_ENGINE__MAP_WORKERS", "9")
        settings = load_settings()
        assert settings.engine.map_workers == 9
        assert settings.engine.input_splits == 8


class TestRenderSettings:
    def test_password_masked(self) -> None:
        settings = LinkVerifySettings(store=StoreSettings(url="postgresql://user:hunter2@db/nodes"))
        rendered = render_settings(settings)
        assert "hunter2" not in rendered
        assert yaml.safe_load(rendered)["engine"]["input_splits"] == 8
