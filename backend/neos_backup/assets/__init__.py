"""Asset pipeline: reference parsing, blob access, SZBson decoding and manifest projection."""

from .blobstore import BlobStore
from .mapper import field_value_to_bson, manifest_to_bson, project_field_value, project_manifest
from .resolver import AssetResolver
from .szbson import decode, decompress, open_szbson, parse_document, read_header
from .uri import AssetUri, NeosRec, Ogg, SZBson, Unknown, Webp, parse_asset_uri

__all__ = [
    "AssetResolver",
    "AssetUri",
    "BlobStore",
    "NeosRec",
    "Ogg",
    "SZBson",
    "Unknown",
    "Webp",
    "decode",
    "decompress",
    "field_value_to_bson",
    "manifest_to_bson",
    "open_szbson",
    "parse_asset_uri",
    "parse_document",
    "project_field_value",
    "project_manifest",
    "read_header",
]
