"""Cross-directory duplicate resolution by fingerprint."""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

from dir_dedupe.index.models import DirectoryIndex, FileRecord

RemoveFunction = Callable[[Path], None]


class DeletionError(Exception):
    """A duplicate file could not be removed."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


@dataclass(slots=True, frozen=True)
class KeptFile:
    """The surviving copy for one fingerprint."""

    location: Path
    record: FileRecord

    @property
    def sort_key(self) -> str:
        return self.location.as_posix()


@dataclass(slots=True, frozen=True)
class ReconcileResult:
    """Outcome of one reconciliation pass."""

    kept: dict[int, KeptFile]
    deleted: tuple[Path, ...]
    failures: tuple[DeletionError, ...]


def reconcile(
    indices: Iterable[DirectoryIndex],
    remove: RemoveFunction = os.remove,
) -> ReconcileResult:
    """Keep the newest file per fingerprint and remove every other copy.

    Records are visited in the given directory order, then record order.
    A strictly later ``date`` wins; equal dates keep the lexically smaller
    path. Removal failures are reported but the pass continues as if the
    file were gone.
    """
    kept: dict[int, KeptFile] = {}
    deleted: list[Path] = []
    failures: list[DeletionError] = []
    retired: set[str] = set()
    for index in indices:
        for record in index.files:
            challenger = KeptFile(location=index.full_path(record), record=record)
            if _location_key(challenger.location) in retired:
                continue
            current = kept.get(record.fingerprint)
            if current is None:
                kept[record.fingerprint] = challenger
                continue
            if _location_key(current.location) == _location_key(challenger.location):
                continue
            if _prefer(challenger, current):
                winner, loser = challenger, current
            else:
                winner, loser = current, challenger
            kept[record.fingerprint] = winner
            retired.add(_location_key(loser.location))
            try:
                remove(loser.location)
            except OSError as exc:
                failures.append(DeletionError(loser.location, exc.strerror or str(exc)))
                continue
            deleted.append(loser.location)
    return ReconcileResult(kept=kept, deleted=tuple(deleted), failures=tuple(failures))


def _prefer(challenger: KeptFile, current: KeptFile) -> bool:
    if challenger.record.date != current.record.date:
        return challenger.record.date > current.record.date
    return challenger.sort_key < current.sort_key


def _location_key(path: Path) -> str:
    return os.path.normcase(os.path.abspath(path))
