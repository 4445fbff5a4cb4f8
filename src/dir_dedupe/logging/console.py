"""Human-readable progress and failure output."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

if TYPE_CHECKING:
    from dir_dedupe.runner import RunSummary


class ConsoleReporter:
    """Writes progress to one stream and failures to another."""

    def __init__(self, out: TextIO | None = None, err: TextIO | None = None) -> None:
        self._out = out if out is not None else sys.stdout
        self._err = err if err is not None else sys.stderr

    def phase(self, name: str) -> None:
        self._write(self._out, f"start {name}")

    def progress(self, position: int, total: int, directory: Path) -> None:
        self._write(self._out, f"Processing {position} of {total} in {directory}")

    def deleted(self, path: Path) -> None:
        self._write(self._out, f"Removed duplicate {path}")

    def failure(self, error: Exception) -> None:
        self._write(self._err, f"{type(error).__name__}: {error}")

    def summary(self, summary: RunSummary) -> None:
        """Print the end-of-run totals, listing anything needing manual action."""
        self._write(
            self._out,
            f"Finished: {len(summary.deleted)} duplicate(s) removed, "
            f"{len(summary.failures)} failure(s).",
        )
        if not summary.failures:
            return
        self._write(self._err, "Failures during this run:")
        for error in summary.failures:
            self._write(self._err, f"  {type(error).__name__}: {error}")
        if summary.deletion_failures:
            self._write(self._err, "Duplicates left in place (remove manually):")
            for deletion in summary.deletion_failures:
                self._write(self._err, f"  {deletion.path}")

    @staticmethod
    def _write(stream: TextIO, line: str) -> None:
        stream.write(line)
        stream.write("\n")
        stream.flush()
