"""Parsing of ``neosdb:///`` and ``neosrec:///`` asset references."""

from __future__ import annotations

from abc import abstractmethod
from typing import Annotated, Any, ClassVar, Literal, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from neos_backup.core.errors import UriParseError

PROTOCOL_SEPARATOR = ":///"
NEOSDB = "neosdb"
NEOSREC = "neosrec"


class _AssetUriBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    @property
    def blob_hash(self) -> str | None:
        """Content hash to look up in the asset store, if the reference has one."""
        return None

    @abstractmethod
    def to_uri(self) -> str:
        """Render the reference back to its wire string."""

    def __str__(self) -> str:
        return self.to_uri()


class _HashedAsset(_AssetUriBase):
    hash: str
    extension: ClassVar[str] = ""

    @property
    def blob_hash(self) -> str:
        return self.hash

    def to_uri(self) -> str:
        return f"{NEOSDB}{PROTOCOL_SEPARATOR}{self.hash}.{self.extension}"


class SZBson(_HashedAsset):
    """LZMA framed BSON scene or object."""

    type: Literal["7zbson"] = "7zbson"
    extension: ClassVar[str] = "7zbson"


class Webp(_HashedAsset):
    type: Literal["webp"] = "webp"
    extension: ClassVar[str] = "webp"


class Ogg(_HashedAsset):
    type: Literal["ogg"] = "ogg"
    extension: ClassVar[str] = "ogg"


class NeosRec(_AssetUriBase):
    """Pointer to another record; there is no blob behind it."""

    type: Literal["neosrec"] = "neosrec"
    group_id: str
    asset_id: str

    def to_uri(self) -> str:
        return f"{NEOSREC}{PROTOCOL_SEPARATOR}{self.group_id}/{self.asset_id}"


class Unknown(_AssetUriBase):
    """``neosdb`` reference whose kind suffix is absent or unrecognised."""

    type: Literal["unknown"] = "unknown"
    kind: str | None = None
    id: str

    @property
    def blob_hash(self) -> str:
        return self.id

    def to_uri(self) -> str:
        suffix = f".{self.kind}" if self.kind is not None else ""
        return f"{NEOSDB}{PROTOCOL_SEPARATOR}{self.id}{suffix}"


AssetUriVariant = Annotated[Union[SZBson, Webp, Ogg, NeosRec, Unknown], Field(discriminator="type")]

_KNOWN_KINDS: dict[str, type[_HashedAsset]] = {
    "7zbson": SZBson,
    "webp": Webp,
    "ogg": Ogg,
}


def parse_asset_uri(value: str) -> SZBson | Webp | Ogg | NeosRec | Unknown:
    """Parse an asset reference string.

    Case is significant and no whitespace is trimmed. ``neosdb`` references
    always yield a hash; unknown or missing kind suffixes produce
    :class:`Unknown` so callers can still report the hash.
    """
    protocol, separator, body = value.partition(PROTOCOL_SEPARATOR)
    if not separator:
        raise UriParseError("missing protocol separator", value)

    if protocol == NEOSDB:
        blob_hash, dot, kind = body.partition(".")
        if not dot:
            return Unknown(kind=None, id=blob_hash)
        variant = _KNOWN_KINDS.get(kind)
        if variant is None:
            return Unknown(kind=kind, id=blob_hash)
        return variant(hash=blob_hash)

    if protocol == NEOSREC:
        group_id, slash, asset_id = body.partition("/")
        if not slash or not group_id or not asset_id:
            raise UriParseError("neosrec reference needs a group id and an asset id", value)
        return NeosRec(group_id=group_id, asset_id=asset_id)

    raise UriParseError("unknown asset protocol", value)


def _coerce_asset_uri(value: Any) -> Any:
    if isinstance(value, str):
        return parse_asset_uri(value)
    return value


AssetUri = Annotated[AssetUriVariant, BeforeValidator(_coerce_asset_uri)]
"""Model field type: raw strings go through :func:`parse_asset_uri`, tagged dicts validate directly."""


__all__ = [
    "AssetUri",
    "AssetUriVariant",
    "SZBson",
    "Webp",
    "Ogg",
    "NeosRec",
    "Unknown",
    "parse_asset_uri",
]
