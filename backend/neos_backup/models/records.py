"""Record documents: the JSON files that reference assets."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Annotated

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from neos_backup.assets.uri import AssetUri
from neos_backup.core.errors import RecordFormatError, UriParseError, format_location
from neos_backup.utils.normalize import BackslashPath, ErrToNone, NullToDefault


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class RecordType(str, Enum):
    AUDIO = "audio"
    DIRECTORY = "directory"
    LINK = "link"
    OBJECT = "object"
    TEXTURE = "texture"
    WORLD = "world"


class AssetRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    hash: str
    bytes: int


class RecordId(CamelModel):
    record_id: str
    owner_id: str


class Submission(CamelModel):
    id: str
    owner_id: str
    target_record_id: RecordId
    submission_time: datetime
    submitted_by_id: str
    submitted_by_name: str
    featured: bool = False
    featured_by_user_id: str | None = None
    featured_timestamp: datetime | None = None


class Record(CamelModel):
    """A saved object, world, directory or link.

    ``asset_uri`` is parsed while validating; directories carry ``null``.
    """

    id: str
    owner_id: str
    asset_uri: AssetUri | None = None
    global_version: int = 0
    local_version: int = 0
    last_modifying_user_id: str = ""
    last_modifying_machine_id: str | None = None
    name: str
    description: str | None = None
    record_type: RecordType = RecordType.OBJECT
    owner_name: str = ""
    tags: Annotated[list[str], NullToDefault] = Field(default_factory=list)
    path: BackslashPath = Field(default_factory=list)
    thumbnail_uri: str | None = None
    last_modification_time: Annotated[datetime | None, ErrToNone] = None
    creation_time: datetime | None = None
    first_publish_time: datetime | None = None
    is_public: bool = False
    is_for_patrons: bool = False
    visits: int = 0
    rating: int = 0
    random_order: int = 0
    submissions: Annotated[list[Submission], NullToDefault] = Field(default_factory=list)
    neos_db_manifest: Annotated[list[AssetRef], NullToDefault] = Field(
        default_factory=list, alias="neosDBmanifest"
    )

    @classmethod
    def from_json(cls, raw: bytes | str, source: str | None = None) -> "Record":
        try:
            return cls.model_validate(orjson.loads(raw))
        except orjson.JSONDecodeError as exc:
            raise RecordFormatError(f"invalid JSON: {exc}", path=source) from exc
        except ValidationError as exc:
            errors = exc.errors(include_url=False)
            for error in errors:
                # a bad assetUri surfaces as the parser's own error
                cause = error.get("ctx", {}).get("error")
                if isinstance(cause, UriParseError):
                    raise UriParseError(cause.message, cause.value, path=source) from exc
            first = errors[0]
            raise RecordFormatError(
                f"{format_location(first['loc'])}: {first['msg']}",
                path=source,
            ) from exc

    @classmethod
    def from_file(cls, path: Path) -> "Record":
        """Load one record JSON file."""
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise RecordFormatError(f"cannot read record: {exc}", path=str(path)) from exc
        return cls.from_json(raw, source=str(path))


__all__ = ["Record", "RecordType", "RecordId", "AssetRef", "Submission", "CamelModel"]
