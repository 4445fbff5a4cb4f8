"""Typed models for per-directory indexing state."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(slots=True, frozen=True)
class FileRecord:
    """Represents one file tracked by a directory index."""

    path: str
    size: int
    date: int
    fingerprint: int


@dataclass(slots=True, frozen=True)
class DirectoryIndex:
    """Ordered file records for one configured directory."""

    directory: Path
    files: tuple[FileRecord, ...] = ()

    @classmethod
    def empty(cls, directory: Path) -> DirectoryIndex:
        return cls(directory=directory, files=())

    def record_map(self) -> dict[str, FileRecord]:
        """Map records by path."""
        return record_map(self.files)

    def full_path(self, record: FileRecord) -> Path:
        """Return the on-disk location of a record in this directory."""
        return self.directory / record.path


@dataclass(slots=True, frozen=True)
class IndexDelta:
    """Deterministic change classification for one scan."""

    added: tuple[str, ...]
    updated: tuple[str, ...]
    unchanged: tuple[str, ...]
    removed: tuple[str, ...]


def record_map(records: tuple[FileRecord, ...] | list[FileRecord]) -> dict[str, FileRecord]:
    """Map records by path, keeping the first record for a repeated path."""
    output: dict[str, FileRecord] = {}
    for record in records:
        output.setdefault(record.path, record)
    return output


def detect_index_delta(
    previous: dict[str, FileRecord],
    current_records: tuple[FileRecord, ...] | list[FileRecord],
) -> IndexDelta:
    """Compute deterministic added/updated/unchanged/removed sets."""
    current = record_map(current_records)
    previous_paths = set(previous.keys())
    current_paths = set(current.keys())

    added = sorted(current_paths - previous_paths)
    removed = sorted(previous_paths - current_paths)

    updated: list[str] = []
    unchanged: list[str] = []
    for path in sorted(previous_paths & current_paths):
        if previous[path] == current[path]:
            unchanged.append(path)
            continue
        updated.append(path)

    return IndexDelta(
        added=tuple(added),
        updated=tuple(updated),
        unchanged=tuple(unchanged),
        removed=tuple(removed),
    )
