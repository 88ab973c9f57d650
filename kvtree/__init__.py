"""
kvtree - Typed hierarchical data on a flat key-value store.

This package maps nested values onto escaped, delimiter-joined flat keys:
- Cursor navigation (get / set / delete / finish)
- Codecs for String, Number, Boolean, Array and Object nodes
- A GET/SET/DELETE query language
- In-memory and HTTP store backends

Example:
    >>> from kvtree import Database, InMemoryKeyValueStore
    >>>
    >>> async with Database(InMemoryKeyValueStore()) as db:
    ...     await db.set("d", ["hi", 30, True])
    ...     await db.get("d").get("length").finish()
    3
    ...     await db.query('SET users.alice.name "Alice Smith"')
    ...     await db.query("GET users.alice.name")
    'Alice Smith'

Invariants:
    - A node exists iff its type tag exists
    - Multi-key writes are not atomic
    - Transport errors propagate unmodified

Version: 1.0.0
"""

__version__ = "1.0.0"

from .client import Database
from .codecs import (
    ArrayCodec,
    BooleanCodec,
    Codec,
    CodecRegistry,
    NumberCodec,
    ObjectCodec,
    StringCodec,
    default_registry,
)
from .config import Settings, setup_logging
from .cursor import Cursor
from .errors import (
    ConfigurationError,
    DuplicateCodecError,
    KvTreeError,
    QuerySyntaxError,
    ReservedKeyError,
    StoreConnectionError,
    UnknownTypeTagError,
    UnsupportedTypeError,
)
from .escape import escape, unescape
from .lifecycle import InitMarker, LifecycleEvent, LifecycleEvents
from .query import NO_VALUE, Query, Verb, execute, parse_query, tokenize
from .store import HttpKeyValueStore, InMemoryKeyValueStore, KeyValueStore
from .types import SELF, Mode, ValueKind, infer_kind

__all__ = [
    # Version
    "__version__",
    # Database
    "Database",
    "Cursor",
    # Codecs
    "Codec",
    "CodecRegistry",
    "StringCodec",
    "NumberCodec",
    "BooleanCodec",
    "ArrayCodec",
    "ObjectCodec",
    "default_registry",
    # Types
    "ValueKind",
    "Mode",
    "SELF",
    "infer_kind",
    # Paths
    "escape",
    "unescape",
    # Query
    "Query",
    "Verb",
    "NO_VALUE",
    "tokenize",
    "parse_query",
    "execute",
    # Stores
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "HttpKeyValueStore",
    # Lifecycle
    "LifecycleEvent",
    "LifecycleEvents",
    "InitMarker",
    # Config
    "Settings",
    "setup_logging",
    # Errors
    "KvTreeError",
    "UnsupportedTypeError",
    "UnknownTypeTagError",
    "ReservedKeyError",
    "DuplicateCodecError",
    "QuerySyntaxError",
    "StoreConnectionError",
    "ConfigurationError",
]
