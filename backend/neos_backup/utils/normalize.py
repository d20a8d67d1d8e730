"""Lenient coercions attached to individual record fields.

Each helper is an ``Annotated`` marker, so leniency applies only where a model
field opts in and never relaxes validation anywhere else:

* ``NullToDefault`` replaces ``null`` with the field type's zero value;
  an absent key is handled by giving the field a default factory.
* ``ErrToNone`` turns a value the inner validator rejects into ``None``.
* ``BackslashPath`` splits ``"A\\B\\C"`` into ``["A", "B", "C"]``.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BeforeValidator, ValidationError, ValidatorFunctionWrapHandler, WrapValidator


def _zero_values() -> tuple[Any, ...]:
    # collections first; "" before 0 so str fields never see a number
    return ([], {}, "", 0)


def _null_to_default(value: Any, handler: ValidatorFunctionWrapHandler) -> Any:
    if value is not None:
        return handler(value)
    for zero in _zero_values():
        try:
            return handler(zero)
        except ValidationError:
            continue
    raise ValueError("no zero value available for null")


def _err_to_none(value: Any, handler: ValidatorFunctionWrapHandler) -> Any:
    try:
        return handler(value)
    except ValidationError:
        return None


def split_backslash_path(value: Any) -> list[str]:
    """Split a backslash separated path; ``None`` yields an empty list."""
    if value is None:
        return []
    if isinstance(value, str):
        return value.split("\\")
    if isinstance(value, (list, tuple)):
        return list(value)
    raise ValueError("path must be a string")


NullToDefault = WrapValidator(_null_to_default)
ErrToNone = WrapValidator(_err_to_none)
BackslashPath = Annotated[list[str], BeforeValidator(split_backslash_path)]


__all__ = ["NullToDefault", "ErrToNone", "BackslashPath", "split_backslash_path"]
