# src/linkverify/engine/output.py
"""Diagnostic output files.

Each reduce partition writes one text file, part-r-NNNNN, holding a line
per UNDEFINED id. An attempt writes under _temporary/ and is renamed into
place only on commit, so retried attempts never leave partial output.
A _SUCCESS marker is written once the whole job has succeeded.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path
from types import TracebackType
from typing import IO, Self

from linkverify.contracts.errors import ConfigurationError

SUCCESS_MARKER = "_SUCCESS"
TEMPORARY_DIR = "_temporary"


def part_name(partition: int) -> str:
    return f"part-r-{partition:05d}"


def prepare_output_dir(output_dir: Path) -> None:
    """Create the output directory, refusing to reuse one with content.

    Raises:
        ConfigurationError: If the path is a file or a non-empty directory.
    """
    if output_dir.exists():
        if not output_dir.is_dir():
            raise ConfigurationError(f"Output path {output_dir} exists and is not a directory")
        if any(output_dir.iterdir()):
            raise ConfigurationError(f"Output directory {output_dir} already exists and is not empty")
    (output_dir / TEMPORARY_DIR).mkdir(parents=True, exist_ok=True)


def mark_success(output_dir: Path) -> None:
    """Write the success marker and drop the scratch directory."""
    scratch = output_dir / TEMPORARY_DIR
    if scratch.exists():
        for leftover in scratch.iterdir():
            leftover.unlink()
        scratch.rmdir()
    (output_dir / SUCCESS_MARKER).touch()


def read_diagnostics(output_dir: Path) -> Iterator[str]:
    """Yield every diagnostic line in partition order."""
    for part in sorted(output_dir.glob("part-r-*")):
        with part.open(encoding="utf-8") as fh:
            for line in fh:
                yield line.rstrip("\n")


class PartWriter:
    """Writer for one reduce attempt's part file.

    Usage:
        with PartWriter(output_dir, partition=3, attempt=1) as writer:
            writer.write_line("...")
            writer.commit()
    """

    def __init__(self, output_dir: Path, *, partition: int, attempt: int) -> None:
        self.final_path = output_dir / part_name(partition)
        self.temp_path = output_dir / TEMPORARY_DIR / f"{part_name(partition)}.attempt-{attempt}"
        self._fh: IO[str] | None = None
        self._committed = False

    def __enter__(self) -> Self:
        self._fh = self.temp_path.open("w", encoding="utf-8")
        return self

    def write_line(self, line: str) -> None:
        if self._fh is None:
            raise RuntimeError("PartWriter used outside its context")
        self._fh.write(line)
        self._fh.write("\n")

    def commit(self) -> None:
        """Flush and atomically move the attempt file into place."""
        if self._fh is None:
            raise RuntimeError("PartWriter used outside its context")
        self._fh.flush()
        os.fsync(self._fh.fileno())
        self._fh.close()
        self._fh = None
        os.replace(self.temp_path, self.final_path)
        self._committed = True

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None
        if not self._committed:
            self.temp_path.unlink(missing_ok=True)
