"""
Lifecycle events for a kvtree database.

Events:
- init: the database is ready for first use
- reset: every key was just deleted (always followed by init)

First-run gating: registering an `init` listener while the InitMarker file
is absent calls the listener immediately and writes the marker. The marker
lives outside the store, so `init` fires once per installation even if
the store is emptied by other means. reset() emits `init` on every call.

Invariants:
    - Listeners are plain callables, called synchronously in registration
      order; coroutine functions are rejected at registration
    - A listener exception propagates to the emitter's caller
    - The marker is written only after the first-run listener returned
"""

from __future__ import annotations

import inspect
import logging
from collections import defaultdict
from enum import Enum
from pathlib import Path
from typing import Callable, DefaultDict, List, Optional, Union

logger = logging.getLogger(__name__)

Listener = Callable[[], object]


class LifecycleEvent(str, Enum):
    """Events emitted by a Database."""

    INIT = "init"
    RESET = "reset"


EventName = Union[LifecycleEvent, str]


class InitMarker:
    """First-run marker file.

    Attributes:
        path: Location of the marker file
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def mark(self) -> None:
        """Create the marker file (and its parent directories)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.touch()
        logger.info(f"Wrote init marker {self.path}")


class LifecycleEvents:
    """Listener registry for lifecycle events.

    Example:
        >>> events = LifecycleEvents(InitMarker(".kvtree/init.marker"))
        >>> events.on("init", seed_defaults)   # called now on first run
        >>> events.emit("reset")
    """

    def __init__(self, marker: Optional[InitMarker] = None) -> None:
        """Initialize registry.

        Args:
            marker: First-run marker; without one, init listeners only
                fire on emit()
        """
        self.marker = marker
        self._listeners: DefaultDict[LifecycleEvent, List[Listener]] = defaultdict(list)

    def on(self, event: EventName, listener: Listener) -> None:
        """Register a listener.

        An `init` listener registered before the marker exists is called
        once immediately.

        Raises:
            TypeError: If listener is a coroutine function
        """
        event = LifecycleEvent(event)
        if inspect.iscoroutinefunction(listener):
            raise TypeError(f"Lifecycle listeners must be synchronous, got coroutine function {listener!r}")
        if event is LifecycleEvent.INIT and self.marker is not None and not self.marker.exists():
            logger.info("First run: firing init listener")
            _call(listener)
            self.marker.mark()
        self._listeners[event].append(listener)

    def off(self, event: EventName, listener: Listener) -> None:
        """Remove a listener. Removing an unknown listener is a no-op."""
        listeners = self._listeners[LifecycleEvent(event)]
        if listener in listeners:
            listeners.remove(listener)

    def listeners(self, event: EventName) -> List[Listener]:
        return list(self._listeners[LifecycleEvent(event)])

    def emit(self, event: EventName) -> int:
        """Call every listener of `event`.

        Returns:
            Number of listeners called
        """
        event = LifecycleEvent(event)
        listeners = self.listeners(event)
        logger.debug(f"Emitting {event.value} to {len(listeners)} listeners")
        for listener in listeners:
            _call(listener)
        return len(listeners)


def _call(listener: Listener) -> None:
    result = listener()
    if inspect.iscoroutine(result):
        result.close()
        raise TypeError(f"Lifecycle listener {listener!r} returned a coroutine; listeners must be synchronous")
