"""Content hashing for NeosDB blobs, which are named by their SHA-256 digest."""

from __future__ import annotations

import hashlib
from typing import BinaryIO, Iterable

_CHUNK_SIZE = 8 * 1024


def sha256_stream(stream: BinaryIO) -> str:
    """Hex digest of everything left in ``stream``."""
    digest = hashlib.sha256()
    for chunk in iter(lambda: stream.read(_CHUNK_SIZE), b""):
        digest.update(chunk)
    return digest.hexdigest()


def digest_matches(stream: BinaryIO, blob_hash: str) -> bool:
    """Whether ``stream`` hashes to ``blob_hash``; blob names compare case-insensitively."""
    return sha256_stream(stream) == blob_hash.lower()


def dedupe_hashes(hashes: Iterable[str]) -> list[str]:
    """Drop repeated blob hashes, keeping first-seen order."""
    return list(dict.fromkeys(hashes))


__all__ = ["sha256_stream", "digest_matches", "dedupe_hashes"]
