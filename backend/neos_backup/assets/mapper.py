"""Projection of decoded BSON documents onto the typed manifest schema.

Slot trees are built bottom-up from an explicit stack: each slot is validated
with its ``Children`` detached and the finished children are attached
afterwards. Nesting is therefore bounded only by ``max_depth``, never by the
validator's own recursion limit. Serialization walks the tree the same way.
"""

from __future__ import annotations

from typing import Any, Mapping, TypeVar

from pydantic import BaseModel, ValidationError

from neos_backup.core.errors import BsonSchemaError, format_location
from neos_backup.models.manifest import FieldValue, Manifest, Slot, project_field_value

DEFAULT_MAX_SLOT_DEPTH = 512

M = TypeVar("M", bound=BaseModel)


def _validate(model: type[M], data: Any, path: str, blob_hash: str | None) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        first = exc.errors(include_url=False)[0]
        location = format_location(first["loc"])
        if path:
            location = f"{path}.{location}" if location else path
        raise BsonSchemaError(
            f"{first['msg']} ({exc.error_count()} error(s))",
            path=location,
            blob_hash=blob_hash,
        ) from exc


def _project_slot_tree(root: Mapping[str, Any], max_depth: int, blob_hash: str | None) -> Slot:
    # pre-order pass: validate every slot shallowly, parents before children
    visited: list[tuple[Mapping[str, Any], Slot, list[Mapping[str, Any]]]] = []
    stack: list[tuple[Mapping[str, Any], int, str]] = [(root, 1, "Object")]
    while stack:
        node, depth, path = stack.pop()
        if depth > max_depth:
            raise BsonSchemaError(
                f"slot nesting exceeds maximum depth of {max_depth}",
                path=path,
                blob_hash=blob_hash,
            )
        children = node.get("Children")
        if isinstance(children, list):
            slot = _validate(Slot, {**node, "Children": []}, path, blob_hash)
            for index, child in enumerate(children):
                if not isinstance(child, Mapping):
                    raise BsonSchemaError(
                        "child slot must be a document",
                        path=f"{path}.Children[{index}]",
                        blob_hash=blob_hash,
                    )
        else:
            # null or absent; anything else fails validation here
            children = []
            slot = _validate(Slot, node, path, blob_hash)
        visited.append((node, slot, children))
        for index in reversed(range(len(children))):
            stack.append((children[index], depth + 1, f"{path}.Children[{index}]"))

    # reversed pre-order sees every child before its parent
    built: dict[int, Slot] = {}
    for node, slot, children in reversed(visited):
        if children:
            slot = slot.model_copy(update={"children": [built[id(child)] for child in children]})
        built[id(node)] = slot
    return built[id(root)]


def project_manifest(
    document: Mapping[str, Any],
    blob_hash: str | None = None,
    max_depth: int = DEFAULT_MAX_SLOT_DEPTH,
) -> Manifest:
    """Project a validated BSON document onto :class:`Manifest`.

    Raises :class:`BsonSchemaError` naming the first offending field path.
    Slots nested deeper than ``max_depth`` are rejected the same way.
    """
    if not isinstance(document, Mapping):
        raise BsonSchemaError("manifest must be a document", blob_hash=blob_hash)
    root = document.get("Object")
    if not isinstance(root, Mapping):
        return _validate(Manifest, document, "", blob_hash)
    manifest = _validate(Manifest, {**document, "Object": None}, "", blob_hash)
    return manifest.model_copy(update={"object": _project_slot_tree(root, max_depth, blob_hash)})


def _slot_to_bson(root: Slot) -> dict[str, Any]:
    dumped: dict[int, dict[str, Any]] = {}
    for slot in reversed(list(root.walk())):
        wire = slot.model_dump(mode="python", by_alias=True, exclude={"children"})
        wire["Children"] = [dumped[id(child)] for child in slot.children]
        dumped[id(slot)] = wire
    return dumped[id(root)]


def manifest_to_bson(manifest: Manifest) -> dict[str, Any]:
    """Re-serialize a manifest using wire names; the inverse of :func:`project_manifest`."""
    rest = manifest.model_dump(mode="python", by_alias=True, exclude={"object"})
    root = _slot_to_bson(manifest.object) if manifest.object is not None else None
    return {"Object": root, **rest}


def field_value_to_bson(value: FieldValue) -> Any:
    """Return the bare wire value behind a FieldValue variant."""
    raw = value.value
    return list(raw) if isinstance(raw, tuple) else raw


__all__ = [
    "project_manifest",
    "manifest_to_bson",
    "project_field_value",
    "field_value_to_bson",
    "DEFAULT_MAX_SLOT_DEPTH",
]
