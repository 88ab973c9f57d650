"""
Codec registry for kvtree.

A codec stores one ValueKind as a node. It never touches the store
directly: encode() and decode() receive the node being written or read and
address its parts through node.write(field, value, mode) and
node.read(field, mode).

Storage layouts:
    String   SELF = text
    Number   SELF = decimal text
    Boolean  SELF = "1" | "0"
    Array    length = Number node, 0..length-1 = typed nodes
    Object   keys = Array node of key names, <key> = typed node per key

The registry is an explicit value passed to cursors. There is no module
level codec table; default_registry() builds a fresh one each call.

Example:
    >>> registry = default_registry()
    >>> registry.kind_of([1, 2])
    <ValueKind.ARRAY: 'Array'>
    >>> registry.codec_for_tag("Array").kind
    <ValueKind.ARRAY: 'Array'>
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterator
from typing import Any, Optional, Protocol, Union, runtime_checkable

from .errors import (
    DuplicateCodecError,
    ReservedKeyError,
    UnknownTypeTagError,
    UnsupportedTypeError,
)
from .escape import Segment
from .types import SELF, Mode, SelfField, ValueKind, infer_kind

logger = logging.getLogger(__name__)

LENGTH_FIELD = "length"
KEYS_FIELD = "keys"

Field = Union[Segment, SelfField]
Number = Union[int, float]

# ASCII decimal spellings only; no digit separators or non-ASCII digits.
_INTEGER_TEXT = re.compile(r"[+-]?[0-9]+")
_FLOAT_TEXT = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|[+-]?Infinity|NaN")


@runtime_checkable
class NodeIO(Protocol):
    """The view of a node that codecs read and write through."""

    @property
    def path(self) -> str:
        ...

    async def write(self, field: Field, value: Any, mode: Mode = Mode.RAW) -> None:
        ...

    async def read(self, field: Field, mode: Mode = Mode.RAW) -> Any:
        ...


@runtime_checkable
class Codec(Protocol):
    """Encode/decode pair for one ValueKind."""

    kind: ValueKind

    async def encode(self, value: Any, node: NodeIO) -> None:
        ...

    async def decode(self, node: NodeIO) -> Any:
        ...


def format_number(value: Number) -> str:
    """Render a number the way it is stored.

    Integral floats drop the fractional part and non-finite values use
    the Infinity/-Infinity/NaN spelling, so stores shared with JavaScript
    writers read back the same.
    """
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer():
        return str(int(value))
    return repr(value)


def parse_number(text: Optional[str]) -> Number:
    """Parse stored number text.

    Malformed or missing content decodes to NaN instead of raising.
    """
    if text is not None:
        stripped = text.strip()
        if _INTEGER_TEXT.fullmatch(stripped):
            return int(stripped)
        if _FLOAT_TEXT.fullmatch(stripped):
            return float(stripped)
    logger.warning(f"Malformed number {text!r}, decoding as NaN")
    return math.nan


class StringCodec:
    kind = ValueKind.STRING

    async def encode(self, value: str, node: NodeIO) -> None:
        await node.write(SELF, value)

    async def decode(self, node: NodeIO) -> str:
        content = await node.read(SELF)
        return content if content is not None else ""


class NumberCodec:
    kind = ValueKind.NUMBER

    async def encode(self, value: Number, node: NodeIO) -> None:
        await node.write(SELF, format_number(value))

    async def decode(self, node: NodeIO) -> Number:
        return parse_number(await node.read(SELF))


class BooleanCodec:
    kind = ValueKind.BOOLEAN

    async def encode(self, value: bool, node: NodeIO) -> None:
        await node.write(SELF, "1" if value else "0")

    async def decode(self, node: NodeIO) -> bool:
        return await node.read(SELF) == "1"


class ArrayCodec:
    """Sequence stored as a Number `length` child plus one node per index.

    `length` is written as a full Number node so it can be read on its
    own with get("length").finish(); decode reads its scalar directly.
    """

    kind = ValueKind.ARRAY

    async def encode(self, value: Any, node: NodeIO) -> None:
        await node.write(LENGTH_FIELD, len(value), Mode.NODE)
        for index, item in enumerate(value):
            await node.write(index, item, Mode.NODE)

    async def decode(self, node: NodeIO) -> list[Any]:
        length = parse_number(await node.read(LENGTH_FIELD))
        if isinstance(length, float):
            if not length.is_integer():
                logger.warning(f"Array at {node.path!r} has malformed length, decoding as empty")
                return []
            length = int(length)
        if length < 0:
            logger.warning(f"Array at {node.path!r} has negative length {length}, decoding as empty")
            return []

        return [await node.read(index, Mode.NODE) for index in range(length)]


class ObjectCodec:
    """Mapping stored as a `keys` Array node plus one node per key.

    Key order on decode follows the order recorded in `keys`, which is the
    insertion order of the encoded mapping.
    """

    kind = ValueKind.OBJECT

    async def encode(self, value: Any, node: NodeIO) -> None:
        keys = list(value.keys())
        for key in keys:
            if not isinstance(key, str):
                raise UnsupportedTypeError(
                    type(key).__name__, node.path, reason="object keys must be strings"
                )
        if KEYS_FIELD in value:
            raise ReservedKeyError(KEYS_FIELD, node.path)

        await node.write(KEYS_FIELD, keys, Mode.NODE)
        for key in keys:
            await node.write(key, value[key], Mode.NODE)

    async def decode(self, node: NodeIO) -> dict[str, Any]:
        keys = await node.read(KEYS_FIELD, Mode.NODE)
        result: dict[str, Any] = {}
        for key in keys or []:
            result[key] = await node.read(key, Mode.NODE)
        return result


class CodecRegistry:
    """Codec lookup by ValueKind or stored type tag.

    Example:
        >>> registry = CodecRegistry()
        >>> registry.register(StringCodec())
        >>> ValueKind.STRING in registry
        True
    """

    def __init__(self) -> None:
        """Initialize empty registry."""
        self._codecs: dict[ValueKind, Codec] = {}

    def register(self, codec: Codec, *, replace: bool = False) -> None:
        """Register a codec for its kind.

        Args:
            codec: Codec to register
            replace: Allow overriding an existing codec for the same kind

        Raises:
            DuplicateCodecError: If the kind is registered and replace is False
        """
        if codec.kind in self._codecs and not replace:
            raise DuplicateCodecError(codec.kind.value)
        self._codecs[codec.kind] = codec

    def codec_for(self, kind: ValueKind) -> Codec:
        """Get the codec for a kind.

        Raises:
            UnsupportedTypeError: If no codec is registered for kind
        """
        codec = self._codecs.get(kind)
        if codec is None:
            raise UnsupportedTypeError(kind.value, reason="no codec registered")
        return codec

    def codec_for_tag(self, tag: str, path: Optional[str] = None) -> Codec:
        """Get the codec for a stored type tag.

        Raises:
            UnknownTypeTagError: If the tag names no registered codec
        """
        try:
            kind = ValueKind.from_tag(tag)
        except ValueError:
            raise UnknownTypeTagError(tag, path) from None
        codec = self._codecs.get(kind)
        if codec is None:
            raise UnknownTypeTagError(tag, path)
        return codec

    def kind_of(self, value: Any, path: Optional[str] = None) -> ValueKind:
        """Infer the kind of a value and check a codec exists for it.

        Raises:
            UnsupportedTypeError: If the value cannot be stored
        """
        try:
            kind = infer_kind(value)
        except UnsupportedTypeError as e:
            raise UnsupportedTypeError(e.type_name, path) from None
        if kind not in self._codecs:
            raise UnsupportedTypeError(type(value).__name__, path, reason="no codec registered")
        return kind

    @property
    def kinds(self) -> tuple[ValueKind, ...]:
        """Registered kinds, in registration order."""
        return tuple(self._codecs)

    def __contains__(self, kind: object) -> bool:
        return kind in self._codecs

    def __iter__(self) -> Iterator[Codec]:
        return iter(self._codecs.values())

    def __len__(self) -> int:
        return len(self._codecs)


def default_registry() -> CodecRegistry:
    """Build a registry holding the five built-in codecs."""
    registry = CodecRegistry()
    for codec in (StringCodec(), NumberCodec(), BooleanCodec(), ArrayCodec(), ObjectCodec()):
        registry.register(codec)
    return registry
