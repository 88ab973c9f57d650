"""
Error types for kvtree.

This module defines all exception types raised by the library:
- KvTreeError: Base exception
- UnsupportedTypeError: Value has no registered codec
- UnknownTypeTagError: Stored type tag has no registered codec
- ReservedKeyError: Object key collides with a structural child
- DuplicateCodecError: A codec is registered twice for one kind
- QuerySyntaxError: Query text could not be parsed
- StoreConnectionError: Store used before connect()
- ConfigurationError: Required settings are missing

Transport failures from the HTTP store are NOT wrapped: httpx exceptions
reach the caller unmodified.

Invariants:
    - All errors inherit from KvTreeError
    - Errors include context for debugging
    - Error messages are actionable
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class KvTreeError(Exception):
    """Base exception for all kvtree errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "KVTREE_ERROR"
        self.details = details or {}


class UnsupportedTypeError(KvTreeError):
    """Value has no registered codec.

    Raised when:
    - set() receives None or an arbitrary object
    - An array or object contains such a value (best-effort: siblings
      encoded before it stay written)
    - An object has non-string keys
    """

    def __init__(
        self,
        type_name: str,
        path: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> None:
        msg = f"Unsupported value type '{type_name}'"
        if path is not None:
            msg += f" at '{path}'"
        if reason:
            msg += f": {reason}"
        super().__init__(
            msg,
            code="UNSUPPORTED_TYPE",
            details={"type_name": type_name, "path": path},
        )
        self.type_name = type_name
        self.path = path


class UnknownTypeTagError(KvTreeError):
    """Stored type tag does not match any registered codec.

    Usually means the store was written with a registry that had extra
    codecs, or the tag key was modified outside kvtree.
    """

    def __init__(self, tag: str, path: Optional[str] = None) -> None:
        msg = f"Unknown type tag '{tag}'"
        if path is not None:
            msg += f" at '{path}'"
        super().__init__(
            msg,
            code="UNKNOWN_TYPE_TAG",
            details={"tag": tag, "path": path},
        )
        self.tag = tag
        self.path = path


class ReservedKeyError(KvTreeError):
    """Object key collides with a structural child name."""

    def __init__(self, key: str, path: Optional[str] = None) -> None:
        super().__init__(
            f"Object key '{key}' is reserved",
            code="RESERVED_KEY",
            details={"key": key, "path": path},
        )
        self.key = key
        self.path = path


class DuplicateCodecError(KvTreeError):
    """A codec for this kind is already registered."""

    def __init__(self, kind: str) -> None:
        super().__init__(
            f"Codec for '{kind}' already registered",
            code="DUPLICATE_CODEC",
            details={"kind": kind},
        )
        self.kind = kind


class QuerySyntaxError(KvTreeError):
    """Query text could not be parsed.

    Attributes:
        query: The offending query text
        position: Character offset of the problem, if known
    """

    def __init__(
        self,
        message: str,
        query: str,
        position: Optional[int] = None,
    ) -> None:
        super().__init__(
            message,
            code="QUERY_SYNTAX",
            details={"query": query, "position": position},
        )
        self.query = query
        self.position = position


class StoreConnectionError(KvTreeError):
    """Store is not connected."""

    def __init__(self, message: str, url: Optional[str] = None) -> None:
        super().__init__(
            message,
            code="STORE_NOT_CONNECTED",
            details={"url": url},
        )
        self.url = url


class ConfigurationError(KvTreeError):
    """Required configuration is missing or invalid."""

    def __init__(self, message: str, setting: Optional[str] = None) -> None:
        super().__init__(
            message,
            code="CONFIGURATION_ERROR",
            details={"setting": setting},
        )
        self.setting = setting
