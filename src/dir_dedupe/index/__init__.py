"""Per-directory fingerprinting and sidecar indexing."""

from .digest import DEFAULT_DIGEST, DIGESTS, DigestFunction, get_digest, sha256_64_file, xxh64_file
from .indexer import (
    DirectoryAccessError,
    DirectoryScan,
    FileAccessError,
    ScanFailure,
    index_directory,
    list_candidates,
)
from .models import DirectoryIndex, FileRecord, IndexDelta, detect_index_delta, record_map
from .store import DEFAULT_SIDECAR_NAME, IndexCorruptionError, SidecarStore

__all__ = [
    "DEFAULT_DIGEST",
    "DEFAULT_SIDECAR_NAME",
    "DIGESTS",
    "DigestFunction",
    "DirectoryAccessError",
    "DirectoryIndex",
    "DirectoryScan",
    "FileAccessError",
    "FileRecord",
    "IndexCorruptionError",
    "IndexDelta",
    "ScanFailure",
    "SidecarStore",
    "detect_index_delta",
    "get_digest",
    "index_directory",
    "list_candidates",
    "record_map",
    "sha256_64_file",
    "xxh64_file",
]
