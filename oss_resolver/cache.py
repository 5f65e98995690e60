"""Process-lifetime cache of raw HTTP documents keyed by URL.

Every provider shares one DocumentCache. A successful GET is stored under the
exact URL string (query string included) and served from memory afterwards.
Failures are never stored, so a later call retries the network.

Concurrency: two threads asking for the same uncached URL may both fetch it;
the entry is written once the body is complete, under a lock, and the last
writer wins. A partially read response is never visible as an entry.
"""

import json
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests

from .exceptions import FetchError, ParseError
from .http_client import create_session
from .logging_config import logger

DEFAULT_TIMEOUT = 30  # seconds


@dataclass(frozen=True)
class CachedDocument:
    """A stored HTTP response body."""

    key: str
    body: bytes
    fetched_at: datetime
    status_code: int = 200
    content_type: Optional[str] = None

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class DocumentCache:
    """
    Memoizes HTTP GET responses by URL for the lifetime of the process.

    Example:
        cache = DocumentCache()
        doc = cache.get_json("https://registry.npmjs.org/lodash")
        cache.get_json("https://registry.npmjs.org/lodash")  # no network call
    """

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = DEFAULT_TIMEOUT) -> None:
        """
        Initialize the cache.

        Args:
            session: Optional requests.Session. A session with the default
                     User-Agent is created when omitted.
            timeout: Per-request timeout in seconds
        """
        self._session = session
        self._owns_session = session is None
        self._timeout = timeout
        self._entries: Dict[str, CachedDocument] = {}
        self._lock = threading.Lock()

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = create_session()
        return self._session

    def close(self) -> None:
        """Close the HTTP session if the cache created it."""
        if self._session is not None and self._owns_session:
            self._session.close()
            self._session = None

    def lookup(self, url: str) -> Optional[CachedDocument]:
        """Return the stored entry for a URL without touching the network."""
        with self._lock:
            return self._entries.get(url)

    def get(self, url: str, bypass_cache: bool = False, store: bool = True) -> bytes:
        """
        Return the body of a GET request, fetching it at most once per URL.

        Args:
            url: Exact URL; also the cache key
            bypass_cache: Fetch even when an entry exists and overwrite it
            store: Keep the response in the cache (False for large artifacts)

        Raises:
            FetchError: On a non-success HTTP status or transport failure
        """
        if not bypass_cache:
            entry = self.lookup(url)
            if entry is not None:
                logger.debug(f"Cache hit: {url}")
                return entry.body

        document = self._fetch(url)
        if store:
            with self._lock:
                self._entries[url] = document
        return document.body

    def get_text(self, url: str, bypass_cache: bool = False) -> str:
        """Return the body of a GET request decoded as UTF-8."""
        return self.get(url, bypass_cache=bypass_cache).decode("utf-8", errors="replace")

    def get_json(self, url: str, bypass_cache: bool = False) -> Any:
        """
        Return the parsed JSON body of a GET request.

        A freshly parsed object is returned on every call so callers can not
        corrupt the cached body.

        Raises:
            FetchError: On a non-success HTTP status or transport failure
            ParseError: If the body is not valid JSON
        """
        body = self.get(url, bypass_cache=bypass_cache)
        try:
            return json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ParseError(f"Invalid JSON from {url}: {e}", url=url) from e

    def exists(self, url: str, bypass_cache: bool = False) -> bool:
        """
        Check whether a URL answers successfully.

        Returns:
            True on success (the body is cached), False on HTTP 404/410

        Raises:
            FetchError: For any other failure
        """
        try:
            self.get(url, bypass_cache=bypass_cache)
            return True
        except FetchError as e:
            if e.is_not_found:
                return False
            raise

    def clear(self) -> None:
        """Drop every cached entry."""
        with self._lock:
            self._entries.clear()

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _fetch(self, url: str) -> CachedDocument:
        logger.debug(f"Fetching: {url}")
        try:
            response = self.session.get(url, timeout=self._timeout)
        except requests.exceptions.Timeout as e:
            logger.debug(f"Timeout fetching {url}")
            raise FetchError(url, cause=e) from e
        except requests.exceptions.RequestException as e:
            logger.debug(f"Error fetching {url}: {e}")
            raise FetchError(url, cause=e) from e

        if not 200 <= response.status_code < 300:
            logger.debug(f"HTTP {response.status_code} for {url}")
            raise FetchError(url, status_code=response.status_code)

        headers = getattr(response, "headers", None) or {}
        return CachedDocument(
            key=url,
            body=response.content,
            fetched_at=datetime.now(timezone.utc),
            status_code=response.status_code,
            content_type=headers.get("Content-Type") if hasattr(headers, "get") else None,
        )
