"""Content-addressed blob access for the backup ``Assets`` directory."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator

from neos_backup.core.config import Settings
from neos_backup.core.errors import AssetIOError
from neos_backup.core.logging import get_logger
from neos_backup.utils.hashing import digest_matches

logger = get_logger(__name__)

# separators and NUL can never appear in a stored blob name
_FORBIDDEN_HASH_CHARS = ("/", "\\", "\x00")


class BlobStore:
    """Open blobs stored as ``<root>/<hash>``.

    The directory is treated as read-only; handles are only held for the
    duration of a ``with store.open(...)`` block.
    """

    def __init__(self, root: Path) -> None:
        root = Path(root).expanduser()
        if not root.is_dir():
            raise AssetIOError(f"asset directory {root} does not exist or is not a directory")
        self.root = root

    @classmethod
    def from_settings(cls, settings: Settings) -> "BlobStore":
        if settings.assets_dir is None:
            raise AssetIOError("no asset directory configured")
        return cls(settings.assets_dir)

    def path_for(self, blob_hash: str) -> Path:
        invalid = blob_hash in ("", ".", "..") or any(ch in blob_hash for ch in _FORBIDDEN_HASH_CHARS)
        if invalid:
            raise AssetIOError(f"invalid blob hash {blob_hash!r}", blob_hash=blob_hash)
        return self.root / blob_hash

    @contextmanager
    def open(self, blob_hash: str) -> Iterator[BinaryIO]:
        path = self.path_for(blob_hash)
        try:
            handle = path.open("rb")
        except FileNotFoundError as exc:
            raise AssetIOError("blob not found", blob_hash=blob_hash) from exc
        except PermissionError as exc:
            raise AssetIOError("permission denied", blob_hash=blob_hash) from exc
        except OSError as exc:
            raise AssetIOError(f"cannot open blob: {exc}", blob_hash=blob_hash) from exc
        logger.debug("Opened blob %s", blob_hash, extra={"ctx_blob": blob_hash})
        with handle:
            yield handle

    def read_bytes(self, blob_hash: str) -> bytes:
        with self.open(blob_hash) as fh:
            try:
                return fh.read()
            except OSError as exc:
                raise AssetIOError(f"cannot read blob: {exc}", blob_hash=blob_hash) from exc

    def exists(self, blob_hash: str) -> bool:
        try:
            return self.path_for(blob_hash).is_file()
        except AssetIOError:
            return False

    def size(self, blob_hash: str) -> int:
        try:
            return self.path_for(blob_hash).stat().st_size
        except OSError as exc:
            raise AssetIOError(f"cannot stat blob: {exc}", blob_hash=blob_hash) from exc

    def verify(self, blob_hash: str) -> bool:
        """Return ``True`` when the blob's SHA-256 digest matches its name."""
        with self.open(blob_hash) as fh:
            try:
                return digest_matches(fh, blob_hash)
            except OSError as exc:
                raise AssetIOError(f"cannot read blob: {exc}", blob_hash=blob_hash) from exc


__all__ = ["BlobStore"]
