"""
HTTP key-value store backed by a Replit-DB style service.

Wire protocol:
    GET    <url>/<key>                     -> value text (404 or empty = absent)
    POST   <url>  body "<key>=<value>"     -> store (both url-encoded)
    DELETE <url>/<key>                     -> remove
    GET    <url>?encode=true&prefix=<p>    -> newline-separated url-encoded keys

Invariants:
    - Keys and values are always url-encoded on the wire
    - Transport errors and non-2xx responses propagate as httpx exceptions,
      unmodified; no retry is performed at this layer
    - The only timeout is the httpx client timeout

How to change safely:
    - The service treats an empty body as "absent"; an empty string value
      therefore reads back as None
"""

from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import quote, unquote

import httpx

from ..errors import StoreConnectionError

logger = logging.getLogger(__name__)

_FORM_HEADERS = {"Content-Type": "application/x-www-form-urlencoded"}


class HttpKeyValueStore:
    """KeyValueStore over HTTP using httpx.AsyncClient.

    Attributes:
        url: Base database URL (no trailing slash)
        timeout: Request timeout in seconds

    Example:
        >>> store = HttpKeyValueStore("https://kv.example.com/db/token")
        >>> await store.connect()
        >>> await store.set(":a", "Hello")
        >>> await store.get(":a")
        'Hello'
        >>> await store.close()
    """

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize HTTP store.

        Args:
            url: Base database URL
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.url = url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def is_connected(self) -> bool:
        """Whether an HTTP client is open."""
        return self._client is not None

    async def connect(self) -> None:
        """Open the HTTP client."""
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        logger.info("HttpKeyValueStore connected")

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("HttpKeyValueStore closed")

    def _require_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise StoreConnectionError("Not connected", url=self.url)
        return self._client

    def _key_url(self, key: str) -> str:
        return f"{self.url}/{quote(key, safe='')}"

    async def get(self, key: str) -> Optional[str]:
        client = self._require_client()
        response = await client.get(self._key_url(key))
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.text or None

    async def set(self, key: str, value: str) -> None:
        client = self._require_client()
        body = f"{quote(key, safe='')}={quote(value, safe='')}"
        response = await client.post(self.url, content=body, headers=_FORM_HEADERS)
        response.raise_for_status()

    async def delete(self, key: str) -> None:
        client = self._require_client()
        response = await client.delete(self._key_url(key))
        if response.status_code == 404:
            return
        response.raise_for_status()

    async def list(self, prefix: str = "") -> List[str]:
        client = self._require_client()
        response = await client.get(self.url, params={"encode": "true", "prefix": prefix})
        response.raise_for_status()
        if not response.text:
            return []
        return [unquote(line) for line in response.text.split("\n") if line]
