"""
Textual query language for kvtree.

Grammar:
    GET    <path>
    SET    <path> <value>
    DELETE <path>

A path is one or more words; inside a word, unquoted "." separates
segments. Double quotes protect whitespace and dots, and inside quotes
\\" and \\\\ escape a quote or a backslash:

    GET users.alice.age            -> ["users", "alice", "age"]
    GET users alice age            -> ["users", "alice", "age"]
    SET "my key".title "Hello world"
    GET version."1.2"              -> ["version", "1.2"]

For SET, the last word is the value, taken as a string with quotes
removed and dots kept. A non-string value can be passed programmatically:

    await db.query("SET config.limits", {"max": 10})

Invariants:
    - Verb matching is case-insensitive
    - A single-segment path acts directly on the root cursor
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Tuple

from .cursor import Cursor
from .errors import QuerySyntaxError

logger = logging.getLogger(__name__)


class _NoValue:
    def __repr__(self) -> str:
        return "NO_VALUE"


NO_VALUE: Any = _NoValue()


class Verb(Enum):
    """Query verbs."""

    GET = "GET"
    SET = "SET"
    DELETE = "DELETE"


@dataclass(frozen=True)
class Word:
    """One whitespace-separated token.

    Attributes:
        text: Token text with quotes removed
        segments: Text split on unquoted dots
        position: Offset of the token's first character
    """

    text: str
    segments: Tuple[str, ...]
    position: int


@dataclass(frozen=True)
class Query:
    """A parsed query.

    Attributes:
        verb: Operation to perform
        path: Logical path segments (never empty)
        value: Value to store for SET, NO_VALUE otherwise
    """

    verb: Verb
    path: Tuple[str, ...]
    value: Any = NO_VALUE


def tokenize(text: str) -> List[Word]:
    """Split query text into words, tracking quote state.

    Raises:
        QuerySyntaxError: On an unterminated quote or dangling escape
    """
    words: List[Word] = []
    chars: List[str] = []
    segment: List[str] = []
    segments: List[str] = []
    start = -1
    quote_start = -1
    in_quote = False
    i = 0

    def end_word() -> None:
        nonlocal chars, segment, segments, start
        segments.append("".join(segment))
        words.append(Word("".join(chars), tuple(segments), start))
        chars, segment, segments, start = [], [], [], -1

    while i < len(text):
        ch = text[i]
        if in_quote:
            if ch == "\\":
                if i + 1 >= len(text):
                    raise QuerySyntaxError("Dangling escape in quoted segment", text, i)
                i += 1
                chars.append(text[i])
                segment.append(text[i])
            elif ch == '"':
                in_quote = False
            else:
                chars.append(ch)
                segment.append(ch)
        elif ch.isspace():
            if start >= 0:
                end_word()
        else:
            if start < 0:
                start = i
            if ch == '"':
                in_quote = True
                quote_start = i
            elif ch == ".":
                chars.append(ch)
                segments.append("".join(segment))
                segment = []
            else:
                chars.append(ch)
                segment.append(ch)
        i += 1

    if in_quote:
        raise QuerySyntaxError("Unterminated quote", text, quote_start)
    if start >= 0:
        end_word()
    return words


def parse_query(text: str, value: Any = NO_VALUE) -> Query:
    """Parse query text into a Query.

    Args:
        text: Query text, e.g. 'SET users.alice.name "Alice Smith"'
        value: Value for SET given programmatically; when omitted the last
            word of a SET query is the value

    Raises:
        QuerySyntaxError: If the query is malformed
    """
    words = tokenize(text)
    if not words:
        raise QuerySyntaxError("Empty query", text, 0)

    head, rest = words[0], words[1:]
    try:
        verb = Verb(head.text.upper())
    except ValueError:
        raise QuerySyntaxError(
            f"Unknown verb '{head.text}'. Expected one of: {[v.value for v in Verb]}",
            text,
            head.position,
        ) from None

    if verb is Verb.SET and value is NO_VALUE:
        if len(rest) < 2:
            raise QuerySyntaxError("SET requires a path and a value", text, len(text))
        value = rest[-1].text
        rest = rest[:-1]
    elif verb is not Verb.SET and value is not NO_VALUE:
        raise QuerySyntaxError(f"{verb.value} does not take a value", text)

    path = tuple(segment for word in rest for segment in word.segments)
    if not path:
        raise QuerySyntaxError(f"{verb.value} requires a path", text, len(text))

    return Query(verb=verb, path=path, value=value)


async def execute(query: Query, root: Cursor) -> Any:
    """Run a parsed query against a root cursor.

    Returns:
        The decoded value (or None) for GET, None otherwise
    """
    logger.debug(f"Executing {query.verb.value} {list(query.path)}")
    if query.verb is Verb.GET:
        return await root.walk(query.path).finish()

    parent = root.walk(query.path[:-1])
    last = query.path[-1]
    if query.verb is Verb.SET:
        await parent.set(last, query.value)
    else:
        await parent.delete(last)
    return None
