"""Sidecar persistence for per-directory indices."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TypeGuard

from dir_dedupe.index.digest import DEFAULT_DIGEST
from dir_dedupe.index.models import DirectoryIndex, FileRecord

DEFAULT_SIDECAR_NAME = "results.json"
_U64_MAX = 2**64 - 1


class IndexCorruptionError(Exception):
    """Raised when a sidecar exists but cannot be used."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class SidecarStore:
    """Reads and atomically rewrites the sidecar index of a directory."""

    def __init__(
        self,
        name: str = DEFAULT_SIDECAR_NAME,
        digest_name: str = DEFAULT_DIGEST,
    ) -> None:
        self._name = name
        self._tmp_name = f"{name}.tmp"
        self._digest_name = digest_name

    @property
    def name(self) -> str:
        return self._name

    def path_for(self, directory: Path) -> Path:
        return directory / self._name

    def excluded_names(self) -> frozenset[str]:
        """Names in a directory that are store files, never scan candidates."""
        return frozenset({self._name, self._tmp_name})

    def load(self, directory: Path) -> DirectoryIndex:
        """Return the stored index, or an empty one when it is missing or corrupt."""
        try:
            return self.read(directory)
        except IndexCorruptionError:
            return DirectoryIndex.empty(directory)

    def read(self, directory: Path) -> DirectoryIndex:
        """Return the stored index; raise IndexCorruptionError when unusable."""
        path = self.path_for(directory)
        if not path.exists():
            return DirectoryIndex.empty(directory)
        try:
            with path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except OSError as exc:
            raise IndexCorruptionError(path, f"unreadable ({exc.strerror or exc})") from exc
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise IndexCorruptionError(path, f"invalid JSON ({exc})") from exc
        if not isinstance(payload, dict):
            raise IndexCorruptionError(path, "top-level value must be an object")
        digest_name = payload.get("digest", self._digest_name)
        if digest_name != self._digest_name:
            raise IndexCorruptionError(
                path, f"written with digest '{digest_name}', expected '{self._digest_name}'"
            )
        rows = payload.get("files")
        if not isinstance(rows, list):
            raise IndexCorruptionError(path, "field 'files' must be a list")

        records: list[FileRecord] = []
        seen: set[str] = set()
        for row in rows:
            record = _record_from_row(row)
            if record is None or record.path in seen:
                continue
            seen.add(record.path)
            records.append(record)
        return DirectoryIndex(directory=directory, files=tuple(records))

    def save(self, index: DirectoryIndex) -> Path:
        """Atomically overwrite the sidecar with the given index."""
        path = self.path_for(index.directory)
        payload = {
            "digest": self._digest_name,
            "files": [_row_from_record(record) for record in index.files],
        }
        tmp = index.directory / self._tmp_name
        try:
            with tmp.open("w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2)
                handle.write("\n")
            tmp.replace(path)
        except Exception:
            tmp.unlink(missing_ok=True)
            raise
        return path


def _row_from_record(record: FileRecord) -> dict[str, object]:
    return {
        "path": record.path,
        "size": record.size,
        "date": record.date,
        "hash": record.fingerprint,
    }


def _record_from_row(row: object) -> FileRecord | None:
    if not isinstance(row, dict):
        return None
    path = row.get("path")
    size = row.get("size")
    date = row.get("date")
    fingerprint = row.get("hash")
    if not isinstance(path, str) or not path:
        return None
    if not _is_u64(size):
        return None
    if not _is_u64(date):
        return None
    if not _is_u64(fingerprint):
        return None
    return FileRecord(path=path, size=size, date=date, fingerprint=fingerprint)


def _is_u64(value: object) -> TypeGuard[int]:
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return 0 <= value <= _U64_MAX
