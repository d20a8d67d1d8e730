"""Resolve asset references embedded in records against the blob store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, Iterator

from neos_backup.assets.blobstore import BlobStore
from neos_backup.assets.mapper import project_manifest
from neos_backup.assets.szbson import open_szbson
from neos_backup.assets.types import ResolvedAsset, ScanReport, ScanResult
from neos_backup.assets.uri import NeosRec, Ogg, SZBson, Unknown, Webp, parse_asset_uri
from neos_backup.core.config import Settings, get_settings
from neos_backup.core.errors import AssetIOError, BackupReaderError
from neos_backup.core.logging import error_context, get_logger
from neos_backup.models.manifest import Manifest
from neos_backup.utils.hashing import dedupe_hashes

if TYPE_CHECKING:
    from neos_backup.models.records import Record

logger = get_logger(__name__)

AnyAssetUri = SZBson | Webp | Ogg | NeosRec | Unknown


class AssetResolver:
    """Turn asset references into blob paths and decoded manifests.

    Holds no mutable state beyond its configuration, so one resolver can be
    shared by callers that shard records across threads.
    """

    def __init__(self, store: BlobStore, settings: Settings | None = None) -> None:
        self.store = store
        self.settings = settings or get_settings()

    @classmethod
    def from_settings(cls, settings: Settings) -> "AssetResolver":
        return cls(BlobStore.from_settings(settings), settings)

    def resolve(self, uri: str | AnyAssetUri) -> ResolvedAsset:
        """Resolve one reference; every failure carries the URI and blob hash."""
        if isinstance(uri, str):
            uri = parse_asset_uri(uri)
        blob_hash = uri.blob_hash
        if blob_hash is None:
            return ResolvedAsset(uri=uri, blob_hash=None, path=None)

        try:
            path = self.store.path_for(blob_hash)
            if self.settings.verify_hashes and not self.store.verify(blob_hash):
                raise AssetIOError("blob content does not match its hash", blob_hash=blob_hash)
            if isinstance(uri, SZBson):
                return ResolvedAsset(uri=uri, blob_hash=blob_hash, path=path, manifest=self.open_manifest(blob_hash))
            if not self.store.exists(blob_hash):
                raise AssetIOError("blob not found", blob_hash=blob_hash)
            return ResolvedAsset(uri=uri, blob_hash=blob_hash, path=path)
        except BackupReaderError as exc:
            exc.with_provenance(blob_hash=blob_hash, uri=uri.to_uri())
            raise

    def open_document(self, blob_hash: str) -> dict[str, Any]:
        """Return the raw BSON document of an SZBson blob, without typed projection."""
        return open_szbson(self.store, blob_hash, max_uncompressed_bytes=self.settings.max_uncompressed_bytes)

    def open_manifest(self, blob_hash: str) -> Manifest:
        document = self.open_document(blob_hash)
        return project_manifest(document, blob_hash=blob_hash, max_depth=self.settings.max_slot_depth)

    def iter_scan(self, records: Iterable[Record], stop_on_error: bool = False) -> Iterator[ScanResult]:
        """Resolve the asset of every record, yielding one result per record.

        Failures are reported as ``error`` results unless ``stop_on_error`` is
        set, in which case the first one is raised.
        """
        for record in records:
            if record.asset_uri is None:
                yield ScanResult(record_id=record.id, status="skipped")
                continue

            uri_text = record.asset_uri.to_uri()
            try:
                resolved = self.resolve(record.asset_uri)
            except BackupReaderError as exc:
                if stop_on_error:
                    raise
                logger.warning(
                    "Failed to resolve asset for record %s: %s",
                    record.id,
                    exc,
                    extra=error_context(exc, record=record.id, uri=uri_text),
                )
                yield ScanResult(
                    record_id=record.id,
                    status="error",
                    uri=uri_text,
                    blob_hash=exc.blob_hash,
                    error_kind=exc.kind,
                    detail=str(exc),
                )
                continue

            if resolved.manifest is not None:
                status = "decoded"
            elif resolved.blob_hash is None:
                status = "skipped"
            else:
                status = "located"
            yield ScanResult(
                record_id=record.id,
                status=status,
                uri=uri_text,
                blob_hash=resolved.blob_hash,
                manifest=resolved.manifest,
            )

    def scan(self, records: Iterable[Record], stop_on_error: bool = False) -> ScanReport:
        report = ScanReport()
        for result in self.iter_scan(records, stop_on_error=stop_on_error):
            report.results.append(result)
            report.stats.add(result)
        logger.info("Scanned %s records", len(report.results), extra={"ctx_stats": report.stats.to_dict()})
        return report

    def missing_blobs(self, records: Iterable[Record]) -> list[str]:
        """Hashes listed in record ``neosDBmanifest`` entries that are absent from the store."""
        hashes = dedupe_hashes(ref.hash for record in records for ref in record.neos_db_manifest)
        return [blob_hash for blob_hash in hashes if not self.store.exists(blob_hash)]


__all__ = ["AssetResolver"]
