"""Tests for resolving record asset references end to end."""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Any

import bson
import pytest

from conftest import make_szbson
from neos_backup.assets.blobstore import BlobStore
from neos_backup.assets.resolver import AssetResolver
from neos_backup.assets.uri import NeosRec, SZBson, Unknown, Webp
from neos_backup.core.config import Settings
from neos_backup.core.errors import AssetIOError, BsonSchemaError, LzmaFormatError
from neos_backup.models.records import Record


def _record(record_id: str, asset_uri: str | None, **extra: Any) -> Record:
    return Record.model_validate(
        {"id": record_id, "ownerId": "U-owner", "name": record_id, "assetUri": asset_uri, **extra}
    )


@pytest.fixture
def resolver(assets_dir: Path) -> AssetResolver:
    return AssetResolver(BlobStore(assets_dir), Settings(assets_dir=assets_dir))


def test_resolves_szbson_to_manifest(resolver: AssetResolver, write_manifest, minimal_document) -> None:
    write_manifest("abc123", minimal_document)
    resolved = resolver.resolve("neosdb:///abc123.7zbson")
    assert resolved.uri == SZBson(hash="abc123")
    assert resolved.blob_hash == "abc123"
    assert resolved.manifest is not None
    assert resolved.manifest.object.name.data == "root"
    assert resolved.manifest.assets is None


def test_other_kinds_stop_at_the_blob(resolver: AssetResolver, write_blob, assets_dir: Path) -> None:
    write_blob("img", b"RIFF....WEBP")
    resolved = resolver.resolve(Webp(hash="img"))
    assert resolved.path == assets_dir / "img"
    assert resolved.manifest is None

    write_blob("raw", b"whatever")
    assert resolver.resolve("neosdb:///raw").uri == Unknown(kind=None, id="raw")


def test_neosrec_needs_no_blob(resolver: AssetResolver) -> None:
    resolved = resolver.resolve("neosrec:///G-foo/R-bar")
    assert resolved.uri == NeosRec(group_id="G-foo", asset_id="R-bar")
    assert resolved.blob_hash is None
    assert resolved.path is None


def test_errors_carry_uri_and_hash(resolver: AssetResolver, write_blob) -> None:
    with pytest.raises(AssetIOError) as missing:
        resolver.resolve("neosdb:///absent.ogg")
    assert missing.value.blob_hash == "absent"
    assert missing.value.uri == "neosdb:///absent.ogg"

    write_blob("bad", b"\x5d\x00\x00\x01\x00" + b"\xff" * 16 + b"\xff" * 32)
    with pytest.raises(LzmaFormatError) as corrupt:
        resolver.resolve("neosdb:///bad.7zbson")
    assert corrupt.value.blob_hash == "bad"
    assert corrupt.value.uri == "neosdb:///bad.7zbson"


def test_schema_error_from_resolve(resolver: AssetResolver, write_manifest) -> None:
    write_manifest("odd", {"Object": {"ID": "s0"}})
    with pytest.raises(BsonSchemaError) as excinfo:
        resolver.resolve("neosdb:///odd.7zbson")
    assert excinfo.value.blob_hash == "odd"
    assert excinfo.value.path.startswith("Object.")


def test_open_document_returns_raw_bson(resolver: AssetResolver, write_manifest) -> None:
    write_manifest("odd", {"Object": {"ID": "s0"}})
    assert resolver.open_document("odd") == {"Object": {"ID": "s0"}}


def test_hash_verification(assets_dir: Path, write_blob, minimal_document) -> None:
    content = make_szbson(bson.encode(minimal_document))
    digest = hashlib.sha256(content).hexdigest()
    write_blob(digest, content)
    write_blob("f" * 64, content)
    resolver = AssetResolver(BlobStore(assets_dir), Settings(verify_hashes=True))

    assert resolver.resolve(f"neosdb:///{digest}.7zbson").manifest is not None
    with pytest.raises(AssetIOError, match="does not match"):
        resolver.resolve(f"neosdb:///{'f' * 64}.7zbson")


def test_scan_collects_outcomes(
    resolver: AssetResolver, write_manifest, write_blob, minimal_document, caplog: pytest.LogCaptureFixture
) -> None:
    write_manifest("good", minimal_document)
    write_blob("tex", b"webp")
    write_blob("broken", b"short")
    records = [
        _record("R-1", "neosdb:///good.7zbson"),
        _record("R-2", None, recordType="directory"),
        _record("R-3", "neosdb:///tex.webp"),
        _record("R-4", "neosdb:///broken.7zbson"),
        _record("R-5", "neosrec:///G-x/R-y", recordType="link"),
        _record("R-6", "neosdb:///gone.ogg"),
    ]

    with caplog.at_level(logging.WARNING):
        report = resolver.scan(records)

    assert [result.status for result in report.results] == [
        "decoded",
        "skipped",
        "located",
        "error",
        "skipped",
        "error",
    ]
    assert report.stats.to_dict() == {"decoded": 1, "located": 1, "skipped": 2, "failed": 2}
    assert report.results[0].manifest is not None

    broken, gone = report.failures
    assert broken.error_kind == "io"
    assert broken.blob_hash == "broken"
    assert broken.uri == "neosdb:///broken.7zbson"
    assert gone.record_id == "R-6"
    assert any(getattr(rec, "ctx_record", None) == "R-4" for rec in caplog.records)


def test_nul_in_hash_is_an_io_error(resolver: AssetResolver) -> None:
    with pytest.raises(AssetIOError) as excinfo:
        resolver.resolve("neosdb:///ab\x00c.7zbson")
    assert excinfo.value.uri == "neosdb:///ab\x00c.7zbson"

    report = resolver.scan([_record("R-1", "neosdb:///ab\x00c.webp")])
    assert report.results[0].status == "error"
    assert report.results[0].error_kind == "io"


def test_scan_can_stop_on_first_error(resolver: AssetResolver) -> None:
    with pytest.raises(AssetIOError):
        resolver.scan([_record("R-1", "neosdb:///gone.7zbson")], stop_on_error=True)


def test_missing_blobs(resolver: AssetResolver, write_blob) -> None:
    write_blob("present", b"x")
    records = [
        _record("R-1", None, neosDBmanifest=[{"hash": "present", "bytes": 1}, {"hash": "absent", "bytes": 4}]),
        _record("R-2", None, neosDBmanifest=[{"hash": "absent", "bytes": 4}]),
        _record("R-3", None, neosDBmanifest=None),
    ]
    assert resolver.missing_blobs(records) == ["absent"]


def test_from_settings(assets_dir: Path) -> None:
    resolver = AssetResolver.from_settings(Settings(assets_dir=assets_dir, max_slot_depth=4))
    assert resolver.store.root == assets_dir
    assert resolver.settings.max_slot_depth == 4
