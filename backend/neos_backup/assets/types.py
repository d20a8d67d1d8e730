"""Result structures produced while resolving asset references."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from neos_backup.assets.uri import NeosRec, Ogg, SZBson, Unknown, Webp
from neos_backup.models.manifest import Manifest


@dataclass(slots=True, frozen=True)
class ResolvedAsset:
    """A parsed reference together with what it resolved to.

    ``manifest`` is only set for SZBson assets; images, audio and unknown kinds
    stop at the blob path, and record pointers have neither.
    """

    uri: SZBson | Webp | Ogg | NeosRec | Unknown
    blob_hash: str | None
    path: Path | None
    manifest: Manifest | None = None


@dataclass(slots=True)
class ScanStats:
    """Aggregated scan statistics."""

    decoded: int = 0
    located: int = 0
    skipped: int = 0
    failed: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "decoded": self.decoded,
            "located": self.located,
            "skipped": self.skipped,
            "failed": self.failed,
        }

    def add(self, result: "ScanResult") -> None:
        if result.status == "decoded":
            self.decoded += 1
        elif result.status == "located":
            self.located += 1
        elif result.status == "skipped":
            self.skipped += 1
        elif result.status == "error":
            self.failed += 1


@dataclass(slots=True)
class ScanResult:
    """Outcome for a single record."""

    record_id: str
    status: str
    uri: str | None = None
    blob_hash: str | None = None
    error_kind: str | None = None
    detail: str | None = None
    manifest: Manifest | None = None


@dataclass(slots=True)
class ScanReport:
    stats: ScanStats = field(default_factory=ScanStats)
    results: list[ScanResult] = field(default_factory=list)

    @property
    def failures(self) -> list[ScanResult]:
        return [result for result in self.results if result.status == "error"]


__all__ = ["ResolvedAsset", "ScanStats", "ScanResult", "ScanReport"]
