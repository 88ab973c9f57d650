"""
Path escaping for flat keys.

A node's flat key is its path segments, escaped and joined with the
delimiter. The root path is the empty string, so every node key starts with
the delimiter:

    set("a", ...)           ->  ":a"
    get("d").set(1, ...)    ->  ":d:1"
    type tag of ":d"        ->  ":d::type"

Escaping rules:
    - "$" becomes "$$"
    - the delimiter ":" becomes "$FWSLH"
    - the empty segment becomes the sentinel "$EMPTY"

Invariants:
    - An escaped segment never contains the delimiter
    - An escaped segment is never empty, so "::" only appears in tag keys
    - escape() is injective: unescape(escape(s)) == s for every s

How to change safely:
    - Keys already in a store were written with these tokens; changing
      them orphans existing data
"""

from __future__ import annotations

from typing import List, Union

Segment = Union[str, int]

DELIMITER = ":"
TYPE_SUFFIX = DELIMITER + DELIMITER + "type"

_ESCAPE_CHAR = "$"
_ESCAPED_ESCAPE = "$$"
_DELIMITER_TOKEN = "$FWSLH"
_EMPTY_TOKEN = "$EMPTY"


def escape(segment: Segment) -> str:
    """Escape one logical segment for embedding in a flat key.

    Integers are converted with str(), so index 1 and "1" address the
    same node.

    Raises:
        TypeError: If segment is not a str or int
    """
    if isinstance(segment, bool) or not isinstance(segment, (str, int)):
        raise TypeError(f"Path segment must be str or int, got {type(segment).__name__}")
    text = str(segment)
    if text == "":
        return _EMPTY_TOKEN
    return text.replace(_ESCAPE_CHAR, _ESCAPED_ESCAPE).replace(DELIMITER, _DELIMITER_TOKEN)


def unescape(fragment: str) -> str:
    """Inverse of escape().

    Raises:
        ValueError: If fragment could not have been produced by escape()
    """
    if fragment == _EMPTY_TOKEN:
        return ""

    out: List[str] = []
    i = 0
    while i < len(fragment):
        ch = fragment[i]
        if ch == DELIMITER:
            raise ValueError(f"Unescaped delimiter at offset {i} in {fragment!r}")
        if ch != _ESCAPE_CHAR:
            out.append(ch)
            i += 1
        elif fragment.startswith(_ESCAPED_ESCAPE, i):
            out.append(_ESCAPE_CHAR)
            i += len(_ESCAPED_ESCAPE)
        elif fragment.startswith(_DELIMITER_TOKEN, i):
            out.append(DELIMITER)
            i += len(_DELIMITER_TOKEN)
        else:
            raise ValueError(f"Malformed escape at offset {i} in {fragment!r}")
    return "".join(out)


def join(path: str, segment: Segment) -> str:
    """Return the key of the child `segment` under `path`."""
    return f"{path}{DELIMITER}{escape(segment)}"


def child_prefix(path: str) -> str:
    """Prefix shared by every descendant key of `path`, tag key included."""
    return path + DELIMITER


def type_key(path: str) -> str:
    """Key holding the type tag of the node at `path`."""
    return path + TYPE_SUFFIX


def split(key: str) -> List[str]:
    """Split a node key (or tag key) back into logical segments.

    Example:
        >>> split(":d:$FWSLH::type")
        ['d', ':']
    """
    if key.endswith(TYPE_SUFFIX):
        key = key[: -len(TYPE_SUFFIX)]
    if key == "":
        return []
    if not key.startswith(DELIMITER):
        raise ValueError(f"Key {key!r} is not rooted at the delimiter")
    return [unescape(part) for part in key[len(DELIMITER):].split(DELIMITER)]
