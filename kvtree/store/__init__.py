"""
Flat key-value store backends.

Backends:
- InMemoryKeyValueStore: dict-backed, for tests and local development
- HttpKeyValueStore: Replit-DB style HTTP service via httpx

Batch helpers (empty, get_all, set_all, delete_multiple) work on any
KeyValueStore.
"""

from .base import (
    KeyValueStore,
    delete_multiple,
    empty,
    get_all,
    set_all,
)
from .http import HttpKeyValueStore
from .memory import InMemoryKeyValueStore

__all__ = [
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "HttpKeyValueStore",
    "empty",
    "get_all",
    "set_all",
    "delete_multiple",
]
