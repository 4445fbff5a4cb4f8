"""Streaming content fingerprints.

Every strategy reduces the full byte content of a file to an unsigned 64-bit
integer. The default, xxHash64, is fast but not collision resistant: two
different files can share a fingerprint, and the reconciler will then delete
one of them as a duplicate. Select ``"sha256"`` where that risk is not
acceptable; it keeps the same width so stored indices stay compatible in
shape, but fingerprints from different strategies are never comparable.
"""

from __future__ import annotations

import hashlib
from collections.abc import Callable
from pathlib import Path

import xxhash

DigestFunction = Callable[[Path], int]

DEFAULT_DIGEST = "xxh64"
READ_CHUNK_BYTES = 1024 * 128


def xxh64_file(path: Path) -> int:
    """Compute xxHash64 over the whole file in chunked reads."""
    digest = xxhash.xxh64()
    with path.open("rb") as handle:
        while True:
            chunk = handle.read(READ_CHUNK_BYTES)
            if not chunk:
                break
            digest.update(chunk)
    return digest.intdigest()


def sha256_64_file(path: Path) -> int:
    """Compute SHA-256 over the whole file, truncated to its first 8 bytes."""
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        while True:
            chunk = handle.read(READ_CHUNK_BYTES)
            if not chunk:
                break
            digest.update(chunk)
    return int.from_bytes(digest.digest()[:8], "big")


DIGESTS: dict[str, DigestFunction] = {
    "xxh64": xxh64_file,
    "sha256": sha256_64_file,
}


def get_digest(name: str) -> DigestFunction:
    """Resolve a registered digest strategy by name."""
    try:
        return DIGESTS[name]
    except KeyError:
        known = ", ".join(sorted(DIGESTS))
        raise ValueError(f"Unknown digest '{name}'; expected one of: {known}.") from None
