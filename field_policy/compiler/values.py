"""
Runtime value classification shared by the projector and the diff.
"""

import dataclasses
from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel

from field_policy.domain.enums import ValueKind


@runtime_checkable
class SupportsToDict(Protocol):
    """Objects that can render themselves as plain data (serializers, DTOs)."""

    def to_dict(self) -> Any: ...


def classify_value(value: Any) -> ValueKind:
    """
    Classify a value into the shapes the projector and diff understand.

    Strings and bytes are sequences in Python but scalars here.
    """
    if value is None:
        return ValueKind.NULL
    if isinstance(value, Mapping):
        return ValueKind.MAPPING
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return ValueKind.SEQUENCE
    return ValueKind.SCALAR


def is_object_like(value: Any) -> bool:
    return classify_value(value) in (ValueKind.MAPPING, ValueKind.SEQUENCE)


def to_plain_data(value: Any) -> Any:
    """
    Convert serializer-style objects to plain mappings/lists.

    Handles pydantic models, dataclass instances and objects exposing
    `to_dict()`. Anything else is returned unchanged.
    """
    if isinstance(value, BaseModel):
        return value.model_dump()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, SupportsToDict):
        return value.to_dict()
    return value
