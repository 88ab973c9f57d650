"""
Base protocol and batch helpers for flat key-value stores.

This module defines the KeyValueStore protocol that all backends must
implement, along with store-level batch helpers built only on the
protocol's primitives.

Invariants:
    - get() returns None for an absent key
    - list(prefix) returns every key starting with prefix, in no
      guaranteed order
    - Batch helpers issue all operations concurrently, unbounded, with
      no rollback: a failure can leave part of the batch applied

How to change safely:
    - Protocol changes require updating all implementations
    - Batch helpers must stay expressible in terms of the primitives
"""

from __future__ import annotations

import asyncio
import logging
from abc import abstractmethod
from typing import Dict, List, Mapping, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class KeyValueStore(Protocol):
    """Protocol for flat key-value backends.

    The only persistence primitive kvtree relies on: string keys, string
    values, and prefix listing.

    Example:
        >>> store = InMemoryKeyValueStore()
        >>> await store.connect()
        >>> await store.set(":a", "Hello")
        >>> await store.list(":")
        [':a']
    """

    @abstractmethod
    async def connect(self) -> None:
        """Connect to the backend.

        Must be called before any other operations.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the connection and release resources."""
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Get the value of a key.

        Returns:
            The stored string, or None if the key is absent
        """
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store a value under a key, replacing any previous value."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key. Deleting an absent key is not an error."""
        ...

    @abstractmethod
    async def list(self, prefix: str = "") -> List[str]:
        """List keys starting with prefix (all keys when prefix is empty)."""
        ...

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether currently connected to the backend."""
        ...


async def delete_multiple(store: KeyValueStore, *keys: str) -> None:
    """Delete several keys concurrently."""
    await asyncio.gather(*(store.delete(key) for key in keys))


async def empty(store: KeyValueStore) -> int:
    """Delete every key in the store.

    Returns:
        Number of keys that were listed for deletion
    """
    keys = await store.list()
    await delete_multiple(store, *keys)
    logger.debug(f"Emptied store: {len(keys)} keys deleted")
    return len(keys)


async def get_all(store: KeyValueStore) -> Dict[str, str]:
    """Export every key/value pair as raw strings.

    Keys deleted between the listing and the read are left out.
    """
    keys = await store.list()
    values = await asyncio.gather(*(store.get(key) for key in keys))
    return {key: value for key, value in zip(keys, values) if value is not None}


async def set_all(store: KeyValueStore, entries: Mapping[str, str]) -> None:
    """Import raw key/value pairs concurrently."""
    await asyncio.gather(*(store.set(key, value) for key, value in entries.items()))
