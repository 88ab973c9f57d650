"""
kvtree Database facade.

This module provides the main client interface:
- Database: root cursor, query language, store batch helpers and
  lifecycle events over one KeyValueStore

Example:
    >>> async with Database.from_settings() as db:
    ...     await db.set("e", {"str": "hi", "num": 2, "bool": False})
    ...     await db.get("e").get("keys").finish()
    ['str', 'num', 'bool']
    ...     await db.query("GET e.num")
    2

Invariants:
    - No global state: each Database owns its store, registry and events
    - Multi-key operations are not atomic; a failure mid-way leaves the
      store partially updated
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from .codecs import CodecRegistry, default_registry
from .config import Settings
from .cursor import Cursor
from .errors import ConfigurationError
from .escape import Segment
from .lifecycle import EventName, InitMarker, LifecycleEvent, LifecycleEvents, Listener
from .query import NO_VALUE, execute, parse_query
from .store import base as batch
from .store.base import KeyValueStore
from .store.http import HttpKeyValueStore

logger = logging.getLogger(__name__)


class Database:
    """Typed hierarchical database over a flat key-value store.

    Attributes:
        store: Backing store
        registry: Codecs used by every cursor of this database
        events: Lifecycle listeners
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        registry: Optional[CodecRegistry] = None,
        events: Optional[LifecycleEvents] = None,
    ) -> None:
        """Initialize a database.

        Args:
            store: Backing store (connected by connect() / async with)
            registry: Codec registry (defaults to the built-in codecs)
            events: Lifecycle events (defaults to one without a marker)
        """
        self.store = store
        self.registry = registry or default_registry()
        self.events = events or LifecycleEvents()
        self._root = Cursor(self.store, self.registry)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> Database:
        """Build an HTTP-backed database from settings.

        Raises:
            ConfigurationError: If no database URL is configured
        """
        settings = settings or Settings()
        if not settings.db_url:
            raise ConfigurationError(
                "No database URL: set KVTREE_DB_URL or REPLIT_DB_URL",
                setting="db_url",
            )
        store = HttpKeyValueStore(settings.db_url, timeout=settings.request_timeout)
        events = LifecycleEvents(InitMarker(settings.init_marker_path))
        return cls(store, events=events)

    async def connect(self) -> None:
        await self.store.connect()

    async def close(self) -> None:
        await self.store.close()

    async def __aenter__(self) -> Database:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # Cursor API

    @property
    def root(self) -> Cursor:
        return self._root

    def get(self, segment: Segment) -> Cursor:
        """Cursor for a top-level node."""
        return self._root.get(segment)

    async def set(self, name: Segment, value: Any) -> None:
        """Store a top-level value."""
        await self._root.set(name, value)

    async def delete(self, name: Segment) -> None:
        """Delete a top-level node and everything under it."""
        await self._root.delete(name)

    async def query(self, text: str, value: Any = NO_VALUE) -> Any:
        """Parse and run a GET/SET/DELETE query.

        Args:
            text: Query text, e.g. "GET users.alice"
            value: Optional programmatic value for SET

        Returns:
            The decoded value for GET, None otherwise

        Raises:
            QuerySyntaxError: If the query is malformed
        """
        return await execute(parse_query(text, value), self._root)

    # Store-level API (raw flat keys)

    async def list(self, prefix: str = "") -> List[str]:
        """List raw flat keys starting with prefix."""
        return await self.store.list(prefix)

    async def empty(self) -> None:
        """Delete every key in the store."""
        await batch.empty(self.store)

    async def get_all(self) -> Dict[str, str]:
        """Export every raw key/value pair."""
        return await batch.get_all(self.store)

    async def set_all(self, entries: Mapping[str, str]) -> None:
        """Import raw key/value pairs."""
        await batch.set_all(self.store, entries)

    async def delete_multiple(self, *keys: str) -> None:
        """Delete several raw keys."""
        await batch.delete_multiple(self.store, *keys)

    # Lifecycle

    def on(self, event: EventName, listener: Listener) -> None:
        """Register a lifecycle listener (see LifecycleEvents.on)."""
        self.events.on(event, listener)

    def off(self, event: EventName, listener: Listener) -> None:
        self.events.off(event, listener)

    async def reset(self) -> None:
        """Delete every key, then emit `reset` followed by `init`."""
        deleted = await batch.empty(self.store)
        logger.info(f"Database reset: {deleted} keys deleted")
        self.events.emit(LifecycleEvent.RESET)
        self.events.emit(LifecycleEvent.INIT)
