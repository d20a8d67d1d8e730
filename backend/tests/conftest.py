"""Test fixtures for the backup reader."""

from __future__ import annotations

import lzma
import sys
from pathlib import Path
from typing import Any, Callable

import bson
import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

SZBSON_FILTERS = [{"id": lzma.FILTER_LZMA1, "dict_size": 1 << 16, "lc": 3, "lp": 0, "pb": 2}]


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset cached settings and environment between tests."""
    monkeypatch.setenv("NEOSBK_ASSETS_DIR", str(tmp_path / "Assets"))
    monkeypatch.delenv("NEOSBK_CONFIG", raising=False)
    monkeypatch.delenv("NEOSBK_VERIFY_HASHES", raising=False)
    monkeypatch.delenv("NEOSBK_STRICT", raising=False)

    from neos_backup.core import config

    config.get_settings.cache_clear()
    yield
    config.get_settings.cache_clear()


def splice_szbson(lzma_alone: bytes, compressed_size: bytes = b"\xff" * 8) -> bytes:
    """Insert the 8-byte compressed-size field after a standard 13-byte LZMA header."""
    return lzma_alone[:13] + compressed_size + lzma_alone[13:]


def make_szbson(payload: bytes, filters: list[dict[str, Any]] | None = None) -> bytes:
    alone = lzma.compress(payload, format=lzma.FORMAT_ALONE, filters=filters or SZBSON_FILTERS)
    return splice_szbson(alone)


@pytest.fixture
def assets_dir(tmp_path: Path) -> Path:
    path = tmp_path / "Assets"
    path.mkdir()
    return path


@pytest.fixture
def write_blob(assets_dir: Path) -> Callable[[str, bytes], Path]:
    def _write(blob_hash: str, content: bytes) -> Path:
        path = assets_dir / blob_hash
        path.write_bytes(content)
        return path

    return _write


@pytest.fixture
def write_manifest(write_blob: Callable[[str, bytes], Path]) -> Callable[[str, dict[str, Any]], Path]:
    def _write(blob_hash: str, document: dict[str, Any]) -> Path:
        return write_blob(blob_hash, make_szbson(bson.encode(document)))

    return _write


@pytest.fixture
def scene_document() -> dict[str, Any]:
    """A small object: a root slot with one child and one component."""
    return {
        "Object": {
            "ID": "s0",
            "Persistent-ID": "p0",
            "Components": {
                "ID": "f0",
                "Data": [
                    {
                        "Type": "FrooxEngine.ValueField`1[[System.Single, mscorlib]]",
                        "Data": {
                            "ID": "c0",
                            "persistent-ID": "cp0",
                            "UpdateOrder": {"ID": "c1", "Data": 0},
                            "Enabled": {"ID": "c2", "Data": True},
                            "Value": {"ID": "c3", "Data": 1.5},
                            "Label": {"ID": "c4", "Data": "hello"},
                            "Offset": {"ID": "c5", "Data": [1.0, 2.0]},
                            "Color": [1.0, 0.5, 0.25, 1.0],
                            "Target": None,
                        },
                    }
                ],
            },
            "Name": {"ID": "f1", "Data": "root"},
            "Tag": {"ID": "f7", "Data": None},
            "Active": {"ID": "f2", "Data": True},
            "Position": {"ID": "f3", "Data": [0.0, 1.0, 2.0]},
            "Rotation": {"ID": "f4", "Data": [0.0, 0.0, 0.0, 1.0]},
            "Scale": {"ID": "f5", "Data": [1.0, 1.0, 1.0]},
            "OrderOffset": {"ID": "f6", "Data": 0},
            "ParentReference": "",
            "Children": [
                {
                    "ID": "s1",
                    "Components": {"ID": "g0", "Data": []},
                    "Name": {"ID": "g1", "Data": "child"},
                    "Active": {"ID": "g2", "Data": False},
                    "Position": {"ID": "g3", "Data": [0.0, 0.0, 0.0]},
                    "Rotation": {"ID": "g4", "Data": [0.0, 0.0, 0.0, 1.0]},
                    "Scale": {"ID": "g5", "Data": [2.0, 2.0, 2.0]},
                    "OrderOffset": {"ID": "g6", "Data": 3},
                    "ParentReference": "s0",
                    "Children": None,
                }
            ],
        },
        "TypeVersions": {"FrooxEngine.ValueField`1": 1},
    }


@pytest.fixture
def minimal_document() -> dict[str, Any]:
    return {
        "Object": {
            "ID": "s0",
            "Components": {"ID": "f0", "Data": []},
            "Name": {"ID": "f1", "Data": "root"},
            "Active": {"ID": "f2", "Data": True},
            "Position": {"ID": "f3", "Data": [0.0, 0.0, 0.0]},
            "Rotation": {"ID": "f4", "Data": [0.0, 0.0, 0.0, 1.0]},
            "Scale": {"ID": "f5", "Data": [1.0, 1.0, 1.0]},
            "OrderOffset": {"ID": "f6", "Data": 0},
            "ParentReference": "",
            "Children": [],
        },
        "TypeVersions": {},
    }
