"""Decoder for SZBson blobs: an LZMA1 stream with a non-standard header wrapping a BSON document.

Byte layout::

    0   1  LZMA properties byte           forwarded
    1   4  dictionary size (LE u32)       forwarded
    5   8  uncompressed size (LE u64)     forwarded
    13  8  compressed size (LE u64)       discarded, unreliable
    21  .. LZMA1 payload                  forwarded

The decompressor is fed bytes ``[0, 13)`` followed by ``[21, EOF)`` so it sees
an ordinary ``.lzma`` ("alone") stream.
"""

from __future__ import annotations

import lzma
import struct
from dataclasses import dataclass
from typing import Any, BinaryIO

import bson
from bson.codec_options import CodecOptions, DatetimeConversion
from bson.errors import InvalidBSON

from neos_backup.assets.blobstore import BlobStore
from neos_backup.core.config import DEFAULT_MAX_UNCOMPRESSED_BYTES
from neos_backup.core.errors import AssetIOError, BackupReaderError, BsonStructureError, LzmaFormatError
from neos_backup.core.logging import get_logger

logger = get_logger(__name__)

LZMA_HEADER = struct.Struct("<BIQ")
COMPRESSED_SIZE_FIELD = struct.Struct("<Q")
UNKNOWN_SIZE = 0xFFFF_FFFF_FFFF_FFFF
MIN_BSON_DOCUMENT = 5

BSON_CODEC_OPTIONS = CodecOptions(tz_aware=True, datetime_conversion=DatetimeConversion.DATETIME_AUTO)


@dataclass(slots=True, frozen=True)
class SZBsonHeader:
    """Parsed container header. ``raw`` holds the 13 bytes handed to the decoder."""

    properties: int
    dict_size: int
    uncompressed_size: int | None
    compressed_size: int
    raw: bytes


def _read_exact(stream: BinaryIO, size: int, what: str) -> bytes:
    try:
        data = stream.read(size)
    except OSError as exc:
        raise AssetIOError(f"cannot read {what}: {exc}") from exc
    if len(data) != size:
        raise AssetIOError(f"short read in {what}: expected {size} bytes, got {len(data)}")
    return data


def read_header(stream: BinaryIO) -> SZBsonHeader:
    """Consume the 21-byte container header from ``stream``."""
    raw = _read_exact(stream, LZMA_HEADER.size, "lzma header")
    (compressed_size,) = COMPRESSED_SIZE_FIELD.unpack(
        _read_exact(stream, COMPRESSED_SIZE_FIELD.size, "compressed size field")
    )
    properties, dict_size, uncompressed_size = LZMA_HEADER.unpack(raw)
    return SZBsonHeader(
        properties=properties,
        dict_size=dict_size,
        uncompressed_size=None if uncompressed_size == UNKNOWN_SIZE else uncompressed_size,
        compressed_size=compressed_size,
        raw=raw,
    )


def decompress(stream: BinaryIO, max_uncompressed_bytes: int = DEFAULT_MAX_UNCOMPRESSED_BYTES) -> bytes:
    """Return the decompressed payload of an SZBson stream."""
    header = read_header(stream)
    if header.uncompressed_size is not None and header.uncompressed_size > max_uncompressed_bytes:
        raise LzmaFormatError(
            f"advertised uncompressed size {header.uncompressed_size} exceeds limit {max_uncompressed_bytes}"
        )
    limit = header.uncompressed_size if header.uncompressed_size is not None else max_uncompressed_bytes

    try:
        payload = stream.read()
    except OSError as exc:
        raise AssetIOError(f"cannot read lzma payload: {exc}") from exc

    decompressor = lzma.LZMADecompressor(format=lzma.FORMAT_ALONE)
    try:
        decompressor.decompress(header.raw)
        output = decompressor.decompress(payload, max_length=limit + 1)
    except lzma.LZMAError as exc:
        raise LzmaFormatError(f"lzma decoder rejected stream: {exc}") from exc

    if len(output) > limit:
        raise LzmaFormatError(f"decompressed payload exceeds limit of {limit} bytes")
    if not decompressor.eof:
        raise LzmaFormatError(f"lzma stream ended early after {len(output)} bytes")
    logger.debug(
        "Decompressed SZBson payload",
        extra={"ctx_compressed": len(payload), "ctx_uncompressed": len(output)},
    )
    return output


def parse_document(data: bytes) -> dict[str, Any]:
    """Validate ``data`` as exactly one BSON document and decode it."""
    if len(data) < MIN_BSON_DOCUMENT:
        raise BsonStructureError(f"document too short ({len(data)} bytes)", offset=0)
    declared = int.from_bytes(data[:4], "little", signed=True)
    if declared != len(data):
        raise BsonStructureError(
            f"document length prefix {declared} does not match payload size {len(data)}",
            offset=0,
        )
    if data[-1] != 0:
        raise BsonStructureError("document is missing its terminating null byte", offset=len(data) - 1)
    try:
        return bson.decode(data, codec_options=BSON_CODEC_OPTIONS)
    except InvalidBSON as exc:
        raise BsonStructureError(f"invalid BSON: {exc}") from exc


def decode(stream: BinaryIO, max_uncompressed_bytes: int = DEFAULT_MAX_UNCOMPRESSED_BYTES) -> dict[str, Any]:
    """Decompress and validate an SZBson stream, returning the raw BSON document."""
    return parse_document(decompress(stream, max_uncompressed_bytes=max_uncompressed_bytes))


def open_szbson(
    store: BlobStore,
    blob_hash: str,
    max_uncompressed_bytes: int = DEFAULT_MAX_UNCOMPRESSED_BYTES,
) -> dict[str, Any]:
    """Read blob ``blob_hash`` from ``store`` and decode it; errors carry the hash."""
    try:
        with store.open(blob_hash) as fh:
            return decode(fh, max_uncompressed_bytes=max_uncompressed_bytes)
    except BackupReaderError as exc:
        exc.with_provenance(blob_hash=blob_hash)
        raise


__all__ = [
    "SZBsonHeader",
    "read_header",
    "decompress",
    "parse_document",
    "decode",
    "open_szbson",
]
