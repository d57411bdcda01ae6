"""
Notion API client for the Notion → Memos migration.

This module implements the read-only interactions with the Notion REST API
that the migration needs: a paginated search over all pages, paginated
retrieval of a page's child blocks, and by-id lookups of pages and
databases used when resolving tags.

Every outbound call first takes a permit from a token-bucket
:class:`RateLimiter` (3 requests per second, burst of 1), which matches
Notion's documented average rate limit.  There is no retry
wrapper here: a non-2xx response raises :class:`TransportError` and a body that
does not match the expected shape raises :class:`DecodeError`.

Usage example::

    from notion2memos.extractors.notion_client import NotionClient

    client = NotionClient(token)
    for page in client.search_pages():
        blocks = client.retrieve_blocks(page.id)

"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, Iterator, List, Optional, Type, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from notion2memos.models.notion import Block, Database, Page, PaginatedResponse
from notion2memos.utils.errors import CancelledError, DecodeError, TransportError

logger = logging.getLogger(__name__)

NOTION_API_BASE = "https://api.notion.com/v1"
NOTION_API_VERSION = "2025-09-03"
RATE_LIMIT_PER_SECOND = 3.0
RATE_LIMIT_BURST = 1
PAGE_SIZE = 100
REQUEST_TIMEOUT = 30.0

ModelT = TypeVar("ModelT", bound=BaseModel)

# Refill arithmetic can land a hair below a whole token
_TOKEN_EPSILON = 1e-9

###############################################################################
# Rate limiting
###############################################################################


def _event_wait(event: threading.Event, timeout: float) -> bool:
    return event.wait(timeout)


class RateLimiter:
    """
    Token-bucket rate limiter.  Tokens refill continuously at ``rate`` per
    second up to ``burst``; each call takes one token.  With the defaults no
    more than 3 permits are granted in any rolling one-second window.

    Waiting is done on a :class:`threading.Event`, so a caller that sets
    the event it passed in interrupts the wait instead of sleeping it out.
    ``time_fn`` and ``wait_fn`` can be replaced in tests.
    """

    def __init__(
        self,
        rate: float = RATE_LIMIT_PER_SECOND,
        burst: int = RATE_LIMIT_BURST,
        *,
        time_fn: Callable[[], float] = time.monotonic,
        wait_fn: Callable[[threading.Event, float], bool] = _event_wait,
    ) -> None:
        if rate <= 0:
            raise ValueError("rate must be positive")
        self.rate = float(rate)
        self.burst = max(1, int(burst))
        self._time_fn = time_fn
        self._wait_fn = wait_fn
        self._tokens = float(self.burst)
        self._last: Optional[float] = None
        self._lock = threading.Lock()

    def _refill(self, now: float) -> None:
        if self._last is not None:
            elapsed = max(0.0, now - self._last)
            self._tokens = min(float(self.burst), self._tokens + elapsed * self.rate)
        self._last = now

    def acquire(self, cancel_event: Optional[threading.Event] = None) -> None:
        """Block until a permit is available.

        :raises CancelledError: if ``cancel_event`` is set before or while
            waiting.
        """
        event = cancel_event if cancel_event is not None else threading.Event()
        with self._lock:
            while True:
                if event.is_set():
                    raise CancelledError("cancelled while waiting for a rate-limit permit")
                self._refill(self._time_fn())
                if self._tokens >= 1.0 - _TOKEN_EPSILON:
                    self._tokens -= 1.0
                    return
                delay = (1.0 - self._tokens) / self.rate
                if self._wait_fn(event, delay):
                    raise CancelledError("cancelled while waiting for a rate-limit permit")


###############################################################################
# Client
###############################################################################


def notion_headers(token: str, version: str = NOTION_API_VERSION) -> Dict[str, str]:
    """
    Construct the headers required for Notion API requests.

    :param token: The integration token.
    :param version: Value of the ``Notion-Version`` header.
    :return: A dictionary of headers including Authorization.
    """
    return {
        "Authorization": f"Bearer {token}",
        "Notion-Version": version,
        "Content-Type": "application/json",
    }


class NotionClient:
    """Read-only, rate-limited Notion API client."""

    def __init__(
        self,
        token: str,
        *,
        base_url: str = NOTION_API_BASE,
        version: str = NOTION_API_VERSION,
        session: Optional[requests.Session] = None,
        limiter: Optional[RateLimiter] = None,
        cancel_event: Optional[threading.Event] = None,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.version = version
        self.timeout = timeout
        self._token = token
        self._session = session or requests.Session()
        self._limiter = limiter or RateLimiter()
        self.cancel_event = cancel_event or threading.Event()

    # -------------------------------------------------------------------------
    # Low-level HTTP helpers
    # -------------------------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send one rate-limited request and return the decoded JSON body."""
        self._limiter.acquire(self.cancel_event)
        url = f"{self.base_url}{path}"
        logger.debug("%s %s", method, url)
        try:
            resp = self._session.request(
                method,
                url,
                headers=notion_headers(self._token, self.version),
                timeout=self.timeout,
                **kwargs,
            )
        except requests.Timeout as e:
            raise TransportError(None, f"timed out after {self.timeout:g}s: {e}", url=url) from e
        except requests.RequestException as e:
            raise TransportError(None, str(e), url=url) from e

        if resp.status_code < 200 or resp.status_code >= 300:
            raise TransportError(resp.status_code, resp.text, url=url)
        try:
            return resp.json()
        except ValueError as e:
            raise DecodeError(f"failed to decode response from {url}: {e}") from e

    @staticmethod
    def _validate(model: Type[ModelT], data: Any, what: str) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise DecodeError(f"unexpected {what} payload: {e}") from e

    def _paginate(self, fetch_page: Callable[[Optional[str]], Any], what: str) -> Iterator[Dict[str, Any]]:
        """Follow ``next_cursor`` until the source reports no more results."""
        cursor: Optional[str] = None
        while True:
            page = self._validate(PaginatedResponse, fetch_page(cursor), what)
            yield from page.results
            if not page.has_more:
                return
            if not page.next_cursor or page.next_cursor == cursor:
                raise DecodeError(f"{what} reported more results without a usable cursor")
            cursor = page.next_cursor

    # -------------------------------------------------------------------------
    # Pages & blocks
    # -------------------------------------------------------------------------

    def search_pages(self, query: str = "") -> List[Page]:
        """
        Return every page visible to the integration, following the search
        cursor until Notion reports no further results.

        :param query: Optional search text; empty searches everything.
        :return: The pages in the order Notion returned them.
        """

        def fetch(cursor: Optional[str]) -> Any:
            payload: Dict[str, Any] = {
                "page_size": PAGE_SIZE,
                "filter": {"property": "object", "value": "page"},
            }
            if query:
                payload["query"] = query
            if cursor:
                payload["start_cursor"] = cursor
            return self._request("POST", "/search", json=payload)

        return [self._validate(Page, item, "page") for item in self._paginate(fetch, "search")]

    def retrieve_blocks(self, block_id: str) -> List[Block]:
        """
        Return the direct children of a page or block, in order.

        Nested children are not fetched; a block's ``has_children`` flag is
        informational only.
        """

        def fetch(cursor: Optional[str]) -> Any:
            params: Dict[str, Any] = {"page_size": PAGE_SIZE}
            if cursor:
                params["start_cursor"] = cursor
            return self._request("GET", f"/blocks/{block_id}/children", params=params)

        return [self._validate(Block, item, "block") for item in self._paginate(fetch, "block children")]

    def retrieve_page(self, page_id: str) -> Page:
        return self._validate(Page, self._request("GET", f"/pages/{page_id}"), "page")

    def retrieve_database(self, database_id: str) -> Database:
        return self._validate(Database, self._request("GET", f"/databases/{database_id}"), "database")
