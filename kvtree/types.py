"""
Core type definitions for the kvtree data model.

This module defines the closed set of value variants and the explicit
modes used when a codec reads or writes part of a node:
- ValueKind: The tagged union of storable variants
- Mode: RAW (a scalar key) or NODE (a full typed child node)
- SELF: Field marker addressing the node's own key

Invariants:
    - ValueKind values are the type tags persisted in the store
    - bool is checked before int since bool is a subclass of int
    - None is not a storable value; finish() uses it for "never set"

How to change safely:
    - Adding a kind requires a codec registered for it
    - Never rename an existing tag value; stored nodes reference it
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

from .errors import UnsupportedTypeError


class ValueKind(Enum):
    """Storable value variants.

    The value of each member is the type tag written next to the node.
    """

    STRING = "String"
    NUMBER = "Number"
    BOOLEAN = "Boolean"
    ARRAY = "Array"
    OBJECT = "Object"

    @classmethod
    def from_tag(cls, tag: str) -> ValueKind:
        """Convert a stored type tag to a ValueKind.

        Raises:
            ValueError: If tag is not a known kind
        """
        for kind in cls:
            if kind.value == tag:
                return kind
        valid = [k.value for k in cls]
        raise ValueError(f"Unknown value kind '{tag}'. Valid kinds: {valid}")


class Mode(Enum):
    """How a codec addresses a field of the node it is encoding.

    RAW reads or writes the field's key directly as a string.
    NODE recurses: the field is a full typed node with its own tag.
    """

    RAW = "raw"
    NODE = "node"


class SelfField:
    """Marker for the node's own key."""

    _instance: SelfField | None = None

    def __new__(cls) -> SelfField:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SELF"


SELF = SelfField()


def infer_kind(value: Any) -> ValueKind:
    """Map a Python value to its ValueKind.

    Args:
        value: Any Python value passed to set()

    Returns:
        The ValueKind whose codec stores this value

    Raises:
        UnsupportedTypeError: If the value has no storable variant
    """
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, Mapping):
        return ValueKind.OBJECT
    if isinstance(value, (list, tuple)):
        return ValueKind.ARRAY
    raise UnsupportedTypeError(type(value).__name__)
