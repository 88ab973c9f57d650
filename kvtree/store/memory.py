"""
In-memory key-value store implementation for testing.

This module provides a simple in-memory backend for:
- Unit tests
- Integration tests
- Local development without a database service

Invariants:
    - All data is lost on process exit
    - Listing is sorted, so tests see deterministic key order
    - connect() is a no-op; operations work without it

How to change safely:
    - This is test-only code, changes don't affect production
    - Keep interface compatible with KeyValueStore protocol
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class InMemoryKeyValueStore:
    """In-memory implementation of KeyValueStore.

    Each operation completes without awaiting anything, so a single
    operation is never interleaved with another coroutine. Multi-step
    sequences built on top of it (delete, batch helpers) still are.

    Example:
        >>> store = InMemoryKeyValueStore({":a": "Hello"})
        >>> await store.get(":a")
        'Hello'
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        """Initialize in-memory store.

        Args:
            initial: Optional key/value pairs to seed the store with
        """
        self._data: Dict[str, str] = dict(initial or {})
        self._connected = False

    @property
    def is_connected(self) -> bool:
        """Whether connect() has been called."""
        return self._connected

    async def connect(self) -> None:
        """Connect (no-op for in-memory)."""
        self._connected = True
        logger.debug("InMemoryKeyValueStore connected")

    async def close(self) -> None:
        """Close. Data is kept so a store can be reopened in tests."""
        self._connected = False
        logger.debug("InMemoryKeyValueStore closed")

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def list(self, prefix: str = "") -> List[str]:
        return sorted(key for key in self._data if key.startswith(prefix))

    # Testing helpers

    def snapshot(self) -> Dict[str, str]:
        """Copy of all stored data."""
        return dict(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data
