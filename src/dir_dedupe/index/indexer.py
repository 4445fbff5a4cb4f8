"""Incremental indexing of one directory's top-level files."""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from dir_dedupe.index.digest import DigestFunction
from dir_dedupe.index.models import DirectoryIndex, FileRecord, detect_index_delta
from dir_dedupe.index.store import IndexCorruptionError, SidecarStore

ProgressCallback = Callable[[int, int, Path], None]


class FileAccessError(Exception):
    """A single file could not be examined, hashed, or written."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class DirectoryAccessError(Exception):
    """A configured directory could not be listed."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


ScanFailure = FileAccessError | DirectoryAccessError | IndexCorruptionError


@dataclass(slots=True, frozen=True)
class DirectoryScan:
    """Outcome of indexing one directory."""

    index: DirectoryIndex
    added: tuple[str, ...]
    updated: tuple[str, ...]
    unchanged: tuple[str, ...]
    removed: tuple[str, ...]
    hashed: int
    reused: int
    failures: tuple[ScanFailure, ...]
    persisted: bool
    unverified: tuple[str, ...] = ()

    @property
    def verified_index(self) -> DirectoryIndex:
        """The index minus records kept only because this pass could not check them."""
        if not self.unverified:
            return self.index
        skipped = set(self.unverified)
        return DirectoryIndex(
            directory=self.index.directory,
            files=tuple(record for record in self.index.files if record.path not in skipped),
        )


@dataclass(slots=True, frozen=True)
class _Stat:
    size: int
    date: int


def index_directory(
    directory: Path,
    store: SidecarStore,
    digest: DigestFunction,
    progress: ProgressCallback | None = None,
) -> DirectoryScan:
    """Reconcile a directory's files against its sidecar and persist the result.

    Stored fingerprints are reused when size and modification second are
    unchanged. Per-file failures are collected; the file keeps its previous
    record, if any, and is listed in ``unverified`` for this pass.
    """
    failures: list[ScanFailure] = []
    try:
        previous = store.read(directory)
    except IndexCorruptionError as exc:
        failures.append(exc)
        previous = DirectoryIndex.empty(directory)

    try:
        names = list_candidates(directory, store.excluded_names())
    except OSError as exc:
        failures.append(DirectoryAccessError(directory, _describe(exc)))
        return DirectoryScan(
            index=DirectoryIndex.empty(directory),
            added=(),
            updated=(),
            unchanged=(),
            removed=(),
            hashed=0,
            reused=0,
            failures=tuple(failures),
            persisted=False,
        )

    prior = previous.record_map()
    records: list[FileRecord] = []
    unverified: list[str] = []
    hashed = 0
    reused = 0
    total = len(names)
    for position, name in enumerate(names, start=1):
        if progress is not None:
            progress(position, total, directory)
        full_path = directory / name
        old = prior.get(name)
        try:
            before = _stat(full_path)
        except OSError as exc:
            failures.append(FileAccessError(full_path, _describe(exc)))
            if old is not None:
                records.append(old)
                unverified.append(name)
            continue
        if old is not None and old.size == before.size and old.date == before.date:
            records.append(old)
            reused += 1
            continue
        try:
            fingerprint = digest(full_path)
            after = _stat(full_path)
        except OSError as exc:
            failures.append(FileAccessError(full_path, _describe(exc)))
            if old is not None:
                records.append(old)
                unverified.append(name)
            continue
        if after != before:
            failures.append(FileAccessError(full_path, "file was modified while hashing"))
            if old is not None:
                records.append(old)
                unverified.append(name)
            continue
        hashed += 1
        records.append(
            FileRecord(path=name, size=before.size, date=before.date, fingerprint=fingerprint)
        )

    index = DirectoryIndex(directory=directory, files=tuple(records))
    delta = detect_index_delta(previous=prior, current_records=index.files)

    persisted = True
    try:
        store.save(index)
    except OSError as exc:
        failures.append(FileAccessError(store.path_for(directory), _describe(exc)))
        persisted = False

    return DirectoryScan(
        index=index,
        added=delta.added,
        updated=delta.updated,
        unchanged=delta.unchanged,
        removed=delta.removed,
        hashed=hashed,
        reused=reused,
        failures=tuple(failures),
        persisted=persisted,
        unverified=tuple(unverified),
    )


def list_candidates(directory: Path, excluded_names: frozenset[str]) -> list[str]:
    """Return names of regular top-level files, sorted, minus store files."""
    names: list[str] = []
    with os.scandir(directory) as entries:
        for entry in entries:
            if entry.name in excluded_names:
                continue
            try:
                is_file = entry.is_file(follow_symlinks=False)
            except OSError:
                # the per-file stat reports it
                is_file = True
            if is_file:
                names.append(entry.name)
    names.sort()
    return names


def _stat(path: Path) -> _Stat:
    stat = path.stat(follow_symlinks=False)
    return _Stat(size=stat.st_size, date=max(0, stat.st_mtime_ns // 1_000_000_000))


def _describe(exc: OSError) -> str:
    if exc.strerror:
        return exc.strerror
    return str(exc) or type(exc).__name__
