"""Error taxonomy for the asset pipeline."""

from __future__ import annotations

from typing import Any


class BackupReaderError(RuntimeError):
    """Base exception raised when reading a backup or one of its assets fails."""

    kind = "error"

    def __init__(self, message: str, *, blob_hash: str | None = None, uri: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.blob_hash = blob_hash
        self.uri = uri

    def with_provenance(self, *, blob_hash: str | None = None, uri: str | None = None) -> "BackupReaderError":
        """Fill in provenance unknown at the raise site; existing values win."""
        if self.blob_hash is None:
            self.blob_hash = blob_hash
        if self.uri is None:
            self.uri = uri
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "blob_hash": self.blob_hash,
            "uri": self.uri,
        }

    def __str__(self) -> str:
        context = []
        if self.blob_hash:
            context.append(f"blob={self.blob_hash}")
        if self.uri:
            context.append(f"uri={self.uri}")
        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"


class AssetIOError(BackupReaderError):
    """Blob missing, unreadable, or shorter than its framing requires."""

    kind = "io"


class LzmaFormatError(BackupReaderError):
    """The LZMA decoder rejected the stream."""

    kind = "lzma_format"


class BsonStructureError(BackupReaderError):
    """Decompressed bytes are not a well-formed BSON document."""

    kind = "bson_structure"

    def __init__(self, message: str, *, offset: int | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.offset = offset

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["offset"] = self.offset
        return payload


class BsonSchemaError(BackupReaderError):
    """BSON is well-formed but does not fit the manifest schema."""

    kind = "bson_schema"

    def __init__(self, message: str, *, path: str = "", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.path = path

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["path"] = self.path
        return payload

    def __str__(self) -> str:
        base = super().__str__()
        return f"{self.path}: {base}" if self.path else base


class UriParseError(BackupReaderError, ValueError):
    """An asset URI could not be parsed."""

    kind = "uri_parse"

    def __init__(self, message: str, value: str, *, path: str | None = None) -> None:
        super().__init__(message, uri=value)
        self.value = value
        self.path = path

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["path"] = self.path
        return payload


class RecordFormatError(BackupReaderError):
    """A record JSON file could not be lifted into a typed record."""

    kind = "record_format"

    def __init__(self, message: str, *, path: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.path = path

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["path"] = self.path
        return payload


def format_location(loc: tuple[int | str, ...] | list[int | str]) -> str:
    """Render a pydantic error location as a dotted field path."""
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path = f"{path}.{part}" if path else str(part)
    return path


__all__ = [
    "BackupReaderError",
    "AssetIOError",
    "LzmaFormatError",
    "BsonStructureError",
    "BsonSchemaError",
    "UriParseError",
    "RecordFormatError",
    "format_location",
]
