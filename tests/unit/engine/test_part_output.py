# tests/unit/engine/test_part_output.py
"""Tests for diagnostic part files."""

from __future__ import annotations

from pathlib import Path

import pytest

from linkverify.contracts import ConfigurationError
from linkverify.engine.output import (
    SUCCESS_MARKER,
    TEMPORARY_DIR,
    PartWriter,
    mark_success,
    part_name,
    prepare_output_dir,
    read_diagnostics,
)


class TestPrepareOutputDir:
    def test_creates_missing_directory(self, tmp_path: Path) -> None:
        out = tmp_path / "out" / "nested"
        prepare_output_dir(out)
        assert (out / TEMPORARY_DIR).is_dir()

    def test_accepts_empty_directory(self, tmp_path: Path) -> None:
        prepare_output_dir(tmp_path)
        assert (tmp_path / TEMPORARY_DIR).is_dir()

    def test_rejects_non_empty_directory(self, tmp_path: Path) -> None:
        (tmp_path / "old.txt").write_text("x")
        with pytest.raises(ConfigurationError, match="not empty"):
            prepare_output_dir(tmp_path)

    def test_rejects_file(self, tmp_path: Path) -> None:
        target = tmp_path / "file"
        target.write_text("x")
        with pytest.raises(ConfigurationError, match="not a directory"):
            prepare_output_dir(target)


class TestPartWriter:
    def test_commit_moves_file_into_place(self, tmp_path: Path) -> None:
        prepare_output_dir(tmp_path)
        with PartWriter(tmp_path, partition=2, attempt=1) as writer:
            writer.write_line("0000000000000001\t0000000000000002")
            writer.commit()

        assert part_name(2) == "part-r-00002"
        assert (tmp_path / "part-r-00002").read_text() == "0000000000000001\t0000000000000002\n"
        assert not writer.temp_path.exists()

    def test_uncommitted_attempt_leaves_nothing(self, tmp_path: Path) -> None:
        prepare_output_dir(tmp_path)
        with pytest.raises(RuntimeError, match="boom"), PartWriter(tmp_path, partition=0, attempt=1) as writer:
            writer.write_line("partial")
            raise RuntimeError("boom")

        assert not (tmp_path / "part-r-00000").exists()
        assert not writer.temp_path.exists()

    def test_write_outside_context_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(RuntimeError, match="outside its context"):
            PartWriter(tmp_path, partition=0, attempt=1).write_line("x")


class TestMarkSuccess:
    def test_marker_written_and_scratch_removed(self, tmp_path: Path) -> None:
        prepare_output_dir(tmp_path)
        mark_success(tmp_path)
        assert (tmp_path / SUCCESS_MARKER).exists()
        assert not (tmp_path / TEMPORARY_DIR).exists()

    def test_read_diagnostics_in_partition_order(self, tmp_path: Path) -> None:
        (tmp_path / "part-r-00001").write_text("b\n")
        (tmp_path / "part-r-00000").write_text("a\n")
        assert list(read_diagnostics(tmp_path)) == ["a", "b"]
