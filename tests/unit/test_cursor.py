"""
Unit tests for Cursor against the in-memory store.

Tests cover:
- Scalar, array and object round trips
- Flat key layout
- Recursive delete and its prefix boundaries
- Absent nodes, unsupported values, unknown tags
- Concurrency behavior, including the known delete race
"""

import asyncio
import math

import pytest

from kvtree.codecs import default_registry
from kvtree.cursor import Cursor
from kvtree.errors import ReservedKeyError, UnknownTypeTagError, UnsupportedTypeError
from kvtree.store.memory import InMemoryKeyValueStore


class TestCursorScalars:
    """Tests for scalar set/finish."""

    @pytest.fixture
    def store(self):
        return InMemoryKeyValueStore()

    @pytest.fixture
    def root(self, store):
        return Cursor(store, default_registry())

    @pytest.mark.asyncio
    async def test_string_round_trip(self, root):
        """set('a', 'Hello') then get('a').finish() returns 'Hello'."""
        await root.set("a", "Hello")
        assert await root.get("a").finish() == "Hello"

    @pytest.mark.asyncio
    async def test_flat_layout(self, root, store):
        """A scalar is its value at the node key plus a type tag."""
        await root.set("a", "Hello")
        assert store.snapshot() == {":a": "Hello", ":a::type": "String"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", ["", "with: colon", 0, 10, -3, 2.5, 1e-7, True, False])
    async def test_scalar_round_trip(self, root, value):
        """Scalars decode to an equal value."""
        await root.set("v", value)
        result = await root.get("v").finish()
        assert result == value
        assert type(result) is type(value) or isinstance(value, float)

    @pytest.mark.asyncio
    async def test_integral_float_reads_back_equal(self, root):
        """2.0 is stored as '2' and reads back as an equal number."""
        await root.set("n", 2.0)
        assert await root.get("n").finish() == 2

    @pytest.mark.asyncio
    async def test_nan_round_trip(self, root):
        """NaN is stored and read back as NaN."""
        await root.set("n", float("nan"))
        assert math.isnan(await root.get("n").finish())

    @pytest.mark.asyncio
    async def test_malformed_number_is_nan(self, store, root):
        """A Number node with junk content decodes to NaN."""
        await store.set(":n::type", "Number")
        await store.set(":n", "abc")
        assert math.isnan(await root.get("n").finish())

    @pytest.mark.asyncio
    async def test_false_is_not_absent(self, root):
        """A stored falsy value is distinguishable from never-set."""
        await root.set("c", False)
        assert await root.get("c").finish() is False
        assert await root.get("missing").finish() is None

    @pytest.mark.asyncio
    async def test_overwrite_scalar(self, root):
        """Last write wins."""
        await root.set("a", "first")
        await root.set("a", 2)
        assert await root.get("a").finish() == 2


class TestCursorComposites:
    """Tests for array and object nodes."""

    @pytest.fixture
    def store(self):
        return InMemoryKeyValueStore()

    @pytest.fixture
    def root(self, store):
        return Cursor(store, default_registry())

    @pytest.mark.asyncio
    async def test_array_children(self, root):
        """Array length and elements are addressable nodes."""
        await root.set("d", ["hi", 30, True])
        d = root.get("d")
        assert await d.get("length").finish() == 3
        assert await d.get(0).finish() == "hi"
        assert await d.get(1).finish() == 30
        assert await d.get("1").finish() == 30
        assert await d.get(2).finish() is True
        assert await d.finish() == ["hi", 30, True]

    @pytest.mark.asyncio
    async def test_array_layout(self, root, store):
        """Every element and the length carry their own tag."""
        await root.set("d", ["hi", 30, True])
        assert store.snapshot() == {
            ":d::type": "Array",
            ":d:length": "3",
            ":d:length::type": "Number",
            ":d:0": "hi",
            ":d:0::type": "String",
            ":d:1": "30",
            ":d:1::type": "Number",
            ":d:2": "1",
            ":d:2::type": "Boolean",
        }

    @pytest.mark.asyncio
    async def test_empty_array(self, root):
        """Empty arrays round-trip."""
        await root.set("d", [])
        assert await root.get("d").finish() == []

    @pytest.mark.asyncio
    async def test_tuple_stored_as_array(self, root):
        """Tuples are arrays and decode as lists."""
        await root.set("t", (1, "two"))
        assert await root.get("t").finish() == [1, "two"]

    @pytest.mark.asyncio
    async def test_object_children(self, root):
        """Object keys list and values are addressable nodes."""
        await root.set("e", {"str": "hi", "num": 2, "bool": False})
        e = root.get("e")
        assert await e.get("keys").finish() == ["str", "num", "bool"]
        assert await e.get("str").finish() == "hi"
        assert await e.get("num").finish() == 2
        assert await e.get("bool").finish() is False

    @pytest.mark.asyncio
    async def test_object_preserves_insertion_order(self, root):
        """Decoded key order is insertion order, not sorted."""
        value = {"zeta": 1, "alpha": 2, "mid": 3}
        await root.set("o", value)
        result = await root.get("o").finish()
        assert result == value
        assert list(result) == ["zeta", "alpha", "mid"]

    @pytest.mark.asyncio
    async def test_empty_object(self, root):
        """Empty objects round-trip."""
        await root.set("o", {})
        assert await root.get("o").finish() == {}

    @pytest.mark.asyncio
    async def test_deep_nesting(self, root):
        """Arbitrary nesting round-trips."""
        value = {
            "users": [
                {"name": "alice", "tags": ["admin", ""], "age": 31},
                {"name": "bob", "tags": [], "active": False},
            ],
            "meta": {"count": 2, "nested": {"deeper": [[1, 2], [3.5]]}},
        }
        await root.set("doc", value)
        assert await root.get("doc").finish() == value
        assert await root.get("doc").get("users").get(0).get("name").finish() == "alice"

    @pytest.mark.asyncio
    async def test_awkward_keys(self, root):
        """Keys with delimiters, escape chars, dots and empty strings round-trip."""
        value = {"a:b": 1, "$FWSLH": 2, "": 3, "x.y": 4, "$": 5, "self": 6}
        await root.set("o", value)
        assert await root.get("o").finish() == value

    @pytest.mark.asyncio
    async def test_overwrite_with_shorter_array(self, root):
        """Stale elements past the new length are not decoded."""
        await root.set("d", [1, 2, 3])
        await root.set("d", ["x"])
        assert await root.get("d").finish() == ["x"]

    @pytest.mark.asyncio
    async def test_set_on_nested_cursor(self, root):
        """set on a child cursor writes under that node."""
        await root.set("cfg", {"limits": {"max": 1}})
        await root.get("cfg").get("limits").set("max", 10)
        assert await root.get("cfg").finish() == {"limits": {"max": 10}}


class TestCursorDelete:
    """Tests for recursive delete."""

    @pytest.fixture
    def store(self):
        return InMemoryKeyValueStore()

    @pytest.fixture
    def root(self, store):
        return Cursor(store, default_registry())

    @pytest.mark.asyncio
    async def test_delete_object(self, root, store):
        """After delete('e'), finish is None and nothing remains under e."""
        await root.set("e", {"str": "hi", "num": 2, "bool": False})
        await root.delete("e")
        assert await root.get("e").finish() is None
        assert await store.list(":e:") == []
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_delete_scalar(self, root, store):
        """Deleting a scalar removes its value and tag."""
        await root.set("a", "Hello")
        await root.delete("a")
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, root, store):
        """Deleting twice leaves the same state as once."""
        await root.set("keep", 1)
        await root.set("d", [1, [2, 3]])
        await root.delete("d")
        once = store.snapshot()
        await root.delete("d")
        assert store.snapshot() == once
        assert once == {":keep": "1", ":keep::type": "Number"}

    @pytest.mark.asyncio
    async def test_delete_never_set(self, root, store):
        """Deleting an absent node is a no-op."""
        await root.delete("ghost")
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_delete_leaves_prefix_siblings(self, root):
        """Deleting 'a' does not touch 'ab' or 'a:b'."""
        await root.set("a", [1])
        await root.set("ab", 2)
        await root.set("a:b", 3)
        await root.delete("a")
        assert await root.get("a").finish() is None
        assert await root.get("ab").finish() == 2
        assert await root.get("a:b").finish() == 3

    @pytest.mark.asyncio
    async def test_delete_nested_child(self, root):
        """Deleting an element leaves the rest of the array."""
        await root.set("d", ["x", "y"])
        await root.get("d").delete(1)
        assert await root.get("d").get(1).finish() is None
        assert await root.get("d").finish() == ["x", None]

    @pytest.mark.asyncio
    async def test_delete_untagged_direct_value(self, root, store):
        """A raw value at the exact path is removed even without a tag."""
        await store.set(":raw", "v")
        await root.delete("raw")
        assert len(store) == 0


class TestCursorPaths:
    """Tests for path handling."""

    @pytest.fixture
    def store(self):
        return InMemoryKeyValueStore()

    @pytest.fixture
    def root(self, store):
        return Cursor(store, default_registry())

    def test_get_is_pure(self, root, store):
        """get() builds a cursor without touching the store."""
        cursor = root.get("a").get(0).get("b")
        assert cursor.path == ":a:0:b"
        assert len(store) == 0

    def test_walk(self, root):
        """walk chains get()."""
        assert root.walk(["a", 0, "b"]) == root.get("a").get(0).get("b")

    def test_segments(self, root):
        """segments unescapes the path."""
        assert root.get("a:b").get("").segments == ["a:b", ""]

    @pytest.mark.asyncio
    async def test_empty_segment(self, root, store):
        """The empty-string key is a real, distinct node."""
        await root.set("", "blank")
        assert await root.get("").finish() == "blank"
        assert ":$EMPTY" in store

    def test_repr(self, root):
        assert repr(root.get("a")) == "Cursor(path=':a')"


class TestCursorErrors:
    """Tests for error handling."""

    @pytest.fixture
    def store(self):
        return InMemoryKeyValueStore()

    @pytest.fixture
    def root(self, store):
        return Cursor(store, default_registry())

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [None, object(), {1, 2}])
    async def test_unsupported_top_level_writes_nothing(self, root, store, value):
        """Unsupported values fail before any write."""
        with pytest.raises(UnsupportedTypeError):
            await root.set("x", value)
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_unsupported_nested_is_best_effort(self, root, store):
        """A nested failure leaves earlier children but no parent tag."""
        with pytest.raises(UnsupportedTypeError) as exc_info:
            await root.set("x", [1, None])
        assert exc_info.value.path == ":x:1"
        assert ":x:0" in store
        assert ":x::type" not in store
        assert await root.get("x").finish() is None

    @pytest.mark.asyncio
    async def test_reserved_object_key(self, root, store):
        """An object key named 'keys' is rejected before writing."""
        with pytest.raises(ReservedKeyError):
            await root.set("o", {"keys": ["a"]})
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_unknown_tag(self, root, store):
        """A tag with no codec raises on finish."""
        await store.set(":z::type", "Date")
        with pytest.raises(UnknownTypeTagError):
            await root.get("z").finish()


class RacingStore(InMemoryKeyValueStore):
    """Store that lets a 'concurrent writer' add a key right after a listing."""

    def __init__(self):
        super().__init__()
        self.intrusion = None

    async def list(self, prefix=""):
        keys = await super().list(prefix)
        if self.intrusion is not None:
            key, value = self.intrusion
            self.intrusion = None
            await self.set(key, value)
        return keys


class TestCursorConcurrency:
    """Tests for concurrent use."""

    @pytest.mark.asyncio
    async def test_disjoint_paths_concurrently(self):
        """Writes to disjoint paths need no coordination."""
        root = Cursor(InMemoryKeyValueStore(), default_registry())
        await asyncio.gather(
            root.set("a", "Hello"),
            root.set("b", 10),
            root.set("c", False),
            root.set("d", ["hi", 30, True]),
            root.set("e", {"str": "hi", "num": 2, "bool": False}),
        )
        results = await asyncio.gather(*(root.get(k).finish() for k in "abcde"))
        assert results == ["Hello", 10, False, ["hi", 30, True], {"str": "hi", "num": 2, "bool": False}]

    @pytest.mark.asyncio
    async def test_delete_race_leaves_orphan(self):
        """Known limitation: a key written between list and delete survives.

        delete() enumerates descendants and then deletes them; it is not
        atomic, so a concurrent child write can outlive the delete.
        """
        store = RacingStore()
        root = Cursor(store, default_registry())
        await root.set("a", {"x": 1})

        store.intrusion = (":a:late", "orphan")
        await root.delete("a")

        assert await root.get("a").finish() is None
        assert await store.list(":a:") == [":a:late"]
