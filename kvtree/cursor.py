"""
Cursor over the kvtree key namespace.

A Cursor is bound to one escaped path and exposes:
- get(segment): descend, no I/O
- set(name, value): encode value as the child node `name`
- delete(name): erase the child node `name` and all its descendants
- finish(): read and decode the node at this path

It is also the NodeIO that codecs write and read through. The mode is an
explicit argument on every call:

    write(SELF, v)             store v at this node's key
    write(field, v, Mode.RAW)  store v at the child key, untyped
    write(field, v, Mode.NODE) recurse: self.set(field, v)
    read(...)                  the same three cases for get / finish

Invariants:
    - A node exists iff its type tag key exists
    - The type tag is written after the codec finished encoding, so a
      failed encode never leaves a tagged, half-written node
    - delete() is enumerate-then-delete and is not atomic: a concurrent
      writer can leave an orphaned key under the deleted path
    - No locking: concurrent writers to one node are last-write-wins

Example:
    >>> root = Cursor(store, default_registry())
    >>> await root.set("d", ["hi", 30, True])
    >>> await root.get("d").get(1).finish()
    30
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional

from . import escape as paths
from .codecs import CodecRegistry, Field
from .escape import Segment
from .store.base import KeyValueStore, delete_multiple
from .types import Mode, SelfField

logger = logging.getLogger(__name__)


class Cursor:
    """Navigational handle bound to a path in a KeyValueStore.

    Attributes:
        store: Backing store
        registry: Codecs used for set/finish
        path: Escaped path ("" for the root)
    """

    def __init__(
        self,
        store: KeyValueStore,
        registry: CodecRegistry,
        path: str = "",
    ) -> None:
        self.store = store
        self.registry = registry
        self._path = path

    @property
    def path(self) -> str:
        return self._path

    @property
    def segments(self) -> List[str]:
        """Logical (unescaped) segments of this cursor's path."""
        return paths.split(self._path)

    def get(self, segment: Segment) -> Cursor:
        """Return a cursor for the child `segment`. Pure, no I/O."""
        return Cursor(self.store, self.registry, paths.join(self._path, segment))

    def walk(self, segments: Iterable[Segment]) -> Cursor:
        """Chain get() over several segments."""
        cursor = self
        for segment in segments:
            cursor = cursor.get(segment)
        return cursor

    async def set(self, name: Segment, value: Any) -> None:
        """Encode `value` as the child node `name`.

        Raises:
            UnsupportedTypeError: If value (or, best-effort, a nested value)
                has no codec. Nested failures leave earlier siblings written.
            ReservedKeyError: If an object uses a reserved key
        """
        child = self.get(name)
        kind = self.registry.kind_of(value, child.path)
        codec = self.registry.codec_for(kind)

        await codec.encode(value, child)
        await self.store.set(paths.type_key(child.path), kind.value)
        logger.debug(f"Set {kind.value} node at {child.path!r}")

    async def delete(self, name: Segment) -> None:
        """Erase the child node `name`: its tag, its scalar, every descendant.

        Deleting a node that does not exist is a no-op.
        """
        target = paths.join(self._path, name)
        marked = await self.store.list(paths.child_prefix(target))
        if await self.store.get(target) is not None:
            marked.append(target)

        await delete_multiple(self.store, *marked)
        logger.debug(f"Deleted {len(marked)} keys under {target!r}")

    async def finish(self) -> Any:
        """Read and decode the node at this path.

        Returns:
            The decoded value, or None if nothing was ever set here

        Raises:
            UnknownTypeTagError: If the stored tag has no codec
        """
        tag = await self.store.get(paths.type_key(self._path))
        if tag is None:
            return None
        codec = self.registry.codec_for_tag(tag, self._path)
        return await codec.decode(self)

    # NodeIO

    async def write(self, field: Field, value: Any, mode: Mode = Mode.RAW) -> None:
        if isinstance(field, SelfField):
            await self.store.set(self._path, value)
        elif mode is Mode.NODE:
            await self.set(field, value)
        else:
            await self.store.set(paths.join(self._path, field), value)

    async def read(self, field: Field, mode: Mode = Mode.RAW) -> Optional[Any]:
        if isinstance(field, SelfField):
            return await self.store.get(self._path)
        if mode is Mode.NODE:
            return await self.get(field).finish()
        return await self.store.get(paths.join(self._path, field))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Cursor):
            return NotImplemented
        return self.store is other.store and self._path == other._path

    def __hash__(self) -> int:
        return hash((id(self.store), self._path))

    def __repr__(self) -> str:
        return f"Cursor(path={self._path!r})"
