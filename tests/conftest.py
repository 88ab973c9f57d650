"""
Shared fixtures: a fake Replit-DB style service behind httpx.MockTransport.
"""

from urllib.parse import quote, unquote

import httpx
import pytest

from kvtree.store.http import HttpKeyValueStore

BASE_URL = "http://kv.test/db"
BASE_PATH = "/db"


class FakeReplitDb:
    """In-process emulation of the key-value HTTP API.

    Attributes:
        data: Stored key/value pairs
        requests: Every request received, in order
        fail_with: If set, every request answers with this status code
    """

    def __init__(self):
        self.data = {}
        self.requests = []
        self.fail_with = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            return httpx.Response(self.fail_with, text="injected failure")

        raw_path = request.url.raw_path.decode("ascii").split("?", 1)[0]
        if raw_path == BASE_PATH:
            if request.method == "POST":
                key, _, value = request.content.decode("ascii").partition("=")
                self.data[unquote(key)] = unquote(value)
                return httpx.Response(200)
            if request.method == "GET":
                prefix = request.url.params.get("prefix", "")
                keys = sorted(k for k in self.data if k.startswith(prefix))
                if request.url.params.get("encode") == "true":
                    keys = [quote(k, safe="") for k in keys]
                return httpx.Response(200, text="\n".join(keys))
            return httpx.Response(405)

        key = unquote(raw_path[len(BASE_PATH) + 1:])
        if request.method == "GET":
            if key not in self.data:
                return httpx.Response(404)
            return httpx.Response(200, text=self.data[key])
        if request.method == "DELETE":
            self.data.pop(key, None)
            return httpx.Response(204)
        return httpx.Response(405)


@pytest.fixture
def fake_db():
    """Fresh fake service."""
    return FakeReplitDb()


@pytest.fixture
def http_store(fake_db):
    """HTTP store wired to the fake service (not yet connected)."""
    return HttpKeyValueStore(BASE_URL, timeout=5.0, transport=httpx.MockTransport(fake_db.handler))
