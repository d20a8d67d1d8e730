"""Typed schema for decoded SZBson payloads.

Wire names are PascalCase (with a few exceptions such as ``ID`` and
``persistent-ID``); model attributes are snake_case. Every versioned leaf is a
``{ID, Data}`` envelope, modelled by :class:`Field`.
"""

from __future__ import annotations

from typing import Annotated, Any, Callable, Generic, Mapping, TypeVar, Union

import pydantic
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    model_serializer,
    model_validator,
)

from neos_backup.utils.normalize import NullToDefault

T = TypeVar("T")

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1

Float2 = tuple[StrictFloat, StrictFloat]
Float3 = tuple[StrictFloat, StrictFloat, StrictFloat]
Float4 = tuple[StrictFloat, StrictFloat, StrictFloat, StrictFloat]


class WireModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Field(WireModel, Generic[T]):
    """Versioned envelope ``{ID, Data}``; both members are required."""

    id: str = pydantic.Field(alias="ID")
    data: T = pydantic.Field(alias="Data")


# FieldValue: the closed set of shapes a component's extra field can take.
# Each variant serializes back to its bare wire value.


class _FieldValue(WireModel):
    value: Any

    @model_serializer
    def _to_wire(self) -> Any:
        return self.value


class StringValue(_FieldValue):
    value: StrictStr


class BoolValue(_FieldValue):
    value: StrictBool


class Int64Value(_FieldValue):
    value: StrictInt


class Float2Value(_FieldValue):
    value: Float2


class Float3Value(_FieldValue):
    value: Float3


class Float4Value(_FieldValue):
    value: Float4


class NullValue(_FieldValue):
    value: None = None


class RawBsonValue(_FieldValue):
    """Anything the typed variants cannot express, kept exactly as decoded."""

    value: Any


FieldValue = Union[
    StringValue,
    BoolValue,
    Int64Value,
    Float2Value,
    Float3Value,
    Float4Value,
    NullValue,
    RawBsonValue,
]

FieldEntry = Union[Field[FieldValue], FieldValue]


def _is_float_element(item: Any) -> bool:
    return isinstance(item, (float, int)) and not isinstance(item, bool)


def _is_float_array(length: int) -> Callable[[Any], bool]:
    def check(value: Any) -> bool:
        return (
            isinstance(value, (list, tuple))
            and len(value) == length
            and all(_is_float_element(item) for item in value)
        )

    return check


def _as_floats(value: Any) -> tuple[float, ...]:
    return tuple(float(item) for item in value)


_FIELD_VALUE_BRANCHES: tuple[tuple[Callable[[Any], bool], Callable[[Any], _FieldValue]], ...] = (
    (lambda v: isinstance(v, str), lambda v: StringValue(value=v)),
    (lambda v: isinstance(v, bool), lambda v: BoolValue(value=v)),
    (
        lambda v: isinstance(v, int) and not isinstance(v, bool) and INT64_MIN <= v <= INT64_MAX,
        lambda v: Int64Value(value=int(v)),
    ),
    (_is_float_array(2), lambda v: Float2Value(value=_as_floats(v))),
    (_is_float_array(3), lambda v: Float3Value(value=_as_floats(v))),
    (_is_float_array(4), lambda v: Float4Value(value=_as_floats(v))),
    (lambda v: v is None, lambda v: NullValue()),
)


def project_field_value(value: Any) -> FieldValue:
    """Project a raw BSON value onto the first matching FieldValue variant.

    Branches are tried in declaration order; :class:`RawBsonValue` is the
    terminal branch, so projection never fails.
    """
    for matches, build in _FIELD_VALUE_BRANCHES:
        if matches(value):
            return build(value)
    return RawBsonValue(value=value)


def _is_envelope(value: Any) -> bool:
    return isinstance(value, Mapping) and set(value.keys()) == {"ID", "Data"} and isinstance(value["ID"], str)


def project_field_entry(value: Any) -> FieldEntry:
    """Versioned envelopes keep their identity; any other value is a bare FieldValue."""
    if _is_envelope(value):
        return Field[FieldValue](id=value["ID"], data=project_field_value(value["Data"]))
    return project_field_value(value)


_DATA_WIRE_NAMES = frozenset({"ID", "persistent-ID", "Persistent-ID", "UpdateOrder", "Enabled"})


class ComponentData(WireModel):
    """Fixed component members plus an open map of extra named fields."""

    id: str = pydantic.Field(alias="ID")
    persistent_id: str | None = pydantic.Field(
        default=None,
        validation_alias=AliasChoices("persistent-ID", "Persistent-ID", "persistent_id"),
        serialization_alias="persistent-ID",
    )
    update_order: Field[StrictInt] = pydantic.Field(alias="UpdateOrder")
    enabled: Field[StrictBool] = pydantic.Field(alias="Enabled")
    fields: dict[str, FieldEntry] = pydantic.Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _collect_extra_fields(cls, data: Any) -> Any:
        # wire-shaped input only; python-side construction passes through
        if not isinstance(data, Mapping) or "ID" not in data:
            return data
        fixed: dict[str, Any] = {}
        extra: dict[str, FieldEntry] = {}
        for key, value in data.items():
            if key in _DATA_WIRE_NAMES:
                fixed[key] = value
            else:
                extra[key] = project_field_entry(value)
        fixed["fields"] = extra
        return fixed

    @model_serializer(mode="wrap")
    def _flatten_fields(self, handler: pydantic.SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        extra = data.pop("fields", {})
        data.update(extra)
        return data


class Component(WireModel):
    # serialized type name, e.g. FrooxEngine.ValueField`1[System.Single]
    cs_type: str = pydantic.Field(alias="Type")
    data: ComponentData = pydantic.Field(alias="Data")


class Slot(WireModel):
    """Node of the object tree: transform, components and child slots."""

    id: str = pydantic.Field(alias="ID")
    persistent_id: str | None = pydantic.Field(
        default=None,
        validation_alias=AliasChoices("Persistent-ID", "persistent-ID", "persistent_id"),
        serialization_alias="Persistent-ID",
    )
    components: Field[list[Component]] = pydantic.Field(alias="Components")
    name: Field[str | None] = pydantic.Field(alias="Name")
    tag: Field[str | None] | None = pydantic.Field(default=None, alias="Tag")
    active: Field[StrictBool] = pydantic.Field(alias="Active")
    position: Field[Float3] = pydantic.Field(alias="Position")
    rotation: Field[Float4] = pydantic.Field(alias="Rotation")
    scale: Field[Float3] = pydantic.Field(alias="Scale")
    order_offset: Field[StrictInt] = pydantic.Field(alias="OrderOffset")
    parent_reference: Annotated[str, NullToDefault] = pydantic.Field(default="", alias="ParentReference")
    children: Annotated[list[Slot], NullToDefault] = pydantic.Field(default_factory=list, alias="Children")

    def walk(self):
        """Yield this slot and all descendants, depth first."""
        stack = [self]
        while stack:
            slot = stack.pop()
            yield slot
            stack.extend(reversed(slot.children))


class Manifest(WireModel):
    """Decoded SZBson payload: an object tree and/or a flat asset library."""

    object: Slot | None = pydantic.Field(default=None, alias="Object")
    assets: list[Component] | None = pydantic.Field(default=None, alias="Assets")
    type_versions: Annotated[dict[str, StrictInt], NullToDefault] = pydantic.Field(
        default_factory=dict, alias="TypeVersions"
    )


Slot.model_rebuild()


__all__ = [
    "Field",
    "FieldValue",
    "FieldEntry",
    "StringValue",
    "BoolValue",
    "Int64Value",
    "Float2Value",
    "Float3Value",
    "Float4Value",
    "NullValue",
    "RawBsonValue",
    "ComponentData",
    "Component",
    "Slot",
    "Manifest",
    "project_field_value",
    "project_field_entry",
]
