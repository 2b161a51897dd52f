from __future__ import annotations

import threading
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

import requests

from .config import (
    SCOPUS_AUTHOR_SEARCH_BASE,
    SCOPUS_MAX_CONCURRENCY,
    SCOPUS_KEY_ROTATION_STATUS_CODES,
    SCOPUS_MAX_RATE_LIMIT_WAITS,
    SCOPUS_RATE_LIMIT_WAIT_MAX,
    SCOPUS_RATE_LIMIT_WAIT_DEFAULT,
    SEARCH_VIEW,
    HTTP_TIMEOUT_DEFAULT,
)
from .exceptions import DECODE_ERRORS, NETWORK_ERRORS, PARSE_ERRORS, SearchError
from .http_utils import DEFAULT_JSON_HEADERS, build_session, decode_json_bytes, parse_retry_after
from .log_utils import logger, LogCategory, LogSource
from .text_utils import safe_get_nested

# (limit, remaining, reset, status) as reported by the last response
RateLimitCallback = Callable[[Optional[str], Optional[str], Optional[str], int], None]


class ScopusAuthorSearchApi:
    """
    Client for the Scopus author search endpoint.

    Requests are spread over one or more API keys: a key whose weekly quota
    is spent (or that is rejected) is retired and the next key takes over.
    Throttled requests wait for ``Retry-After`` and are repeated with the
    same key. At most ``max_concurrency`` searches are in flight at once, so
    the client can be shared by worker threads.
    """

    def __init__(
        self,
        api_keys: Sequence[str],
        max_concurrency: int = SCOPUS_MAX_CONCURRENCY,
        session: Optional[requests.Session] = None,
        base_url: str = SCOPUS_AUTHOR_SEARCH_BASE,
        timeout: float = HTTP_TIMEOUT_DEFAULT,
        sleep: Callable[[float], None] = time.sleep,
    ):
        keys = [k for k in api_keys if k]
        if not keys:
            raise ValueError("At least one API key is required")
        self._keys: List[str] = keys
        self._key_index = 0
        self._key_lock = threading.Lock()
        self._slots = threading.BoundedSemaphore(max(1, max_concurrency))
        self._session = session if session is not None else build_session(pool_size=max(1, max_concurrency))
        self._base_url = base_url
        self._timeout = timeout
        self._sleep = sleep

    @property
    def active_key_count(self) -> int:
        with self._key_lock:
            return len(self._keys) - self._key_index

    def _current_key(self) -> Optional[str]:
        with self._key_lock:
            if self._key_index < len(self._keys):
                return self._keys[self._key_index]
            return None

    def _retire_key(self, key: str) -> None:
        with self._key_lock:
            # another thread may already have moved past this key
            if self._key_index < len(self._keys) and self._keys[self._key_index] == key:
                self._key_index += 1
                logger.warn(
                    f"API key retired; {len(self._keys) - self._key_index} key(s) left",
                    category=LogCategory.RATE,
                    source=LogSource.SCOPUS,
                )

    def search(
        self,
        query: str,
        view: str = SEARCH_VIEW,
        on_rate_limit: Optional[RateLimitCallback] = None,
    ) -> Dict[str, Any]:
        """
        Run one author search and return the decoded response body. Raises
        SearchError when the request cannot be completed with any key.
        """
        with self._slots:
            return self._search(query, view, on_rate_limit)

    def _search(self, query: str, view: str, on_rate_limit: Optional[RateLimitCallback]) -> Dict[str, Any]:
        params = {"query": query, "view": view}
        waits = 0
        while True:
            key = self._current_key()
            if key is None:
                raise SearchError("All API keys are exhausted", query=query)

            headers = DEFAULT_JSON_HEADERS.copy()
            headers["X-ELS-APIKey"] = key
            try:
                resp = self._session.get(self._base_url, params=params, headers=headers, timeout=self._timeout)
            except NETWORK_ERRORS as e:
                raise SearchError(f"Request failed: {e}", query=query) from e

            if on_rate_limit is not None:
                on_rate_limit(
                    resp.headers.get("X-RateLimit-Limit"),
                    resp.headers.get("X-RateLimit-Remaining"),
                    resp.headers.get("X-RateLimit-Reset"),
                    resp.status_code,
                )

            if resp.status_code in SCOPUS_KEY_ROTATION_STATUS_CODES:
                if resp.status_code == 429 and not _quota_exhausted(resp):
                    if waits >= SCOPUS_MAX_RATE_LIMIT_WAITS:
                        raise SearchError(
                            f"Still throttled after {waits} wait(s)", status=resp.status_code, query=query
                        )
                    waits += 1
                    delay = parse_retry_after(resp.headers.get("Retry-After")) or SCOPUS_RATE_LIMIT_WAIT_DEFAULT
                    self._sleep(min(delay, SCOPUS_RATE_LIMIT_WAIT_MAX))
                    continue
                self._retire_key(key)
                continue

            try:
                resp.raise_for_status()
            except requests.exceptions.HTTPError as e:
                raise SearchError(
                    f"HTTP {resp.status_code}: {_error_message(resp)}", status=resp.status_code, query=query
                ) from e

            try:
                body = decode_json_bytes(resp.content, resp.url or self._base_url)
            except DECODE_ERRORS + PARSE_ERRORS as e:
                raise SearchError(str(e), status=resp.status_code, query=query) from e
            if not isinstance(body, dict) or "search-results" not in body:
                raise SearchError("Response has no search-results", status=resp.status_code, query=query)
            return body


def _quota_exhausted(resp: requests.Response) -> bool:
    """
    Tell a spent quota apart from short-term throttling.
    """
    if (resp.headers.get("X-RateLimit-Remaining") or "").strip() == "0":
        return True
    return "QUOTA" in (resp.headers.get("X-ELS-Status") or "").upper()


def _error_message(resp: requests.Response) -> str:
    """
    Pull the service's own error text out of a failed response when present.
    """
    try:
        body = resp.json()
    except ValueError:
        return resp.reason or ""
    text = safe_get_nested(body, "service-error", "status", "statusText") or safe_get_nested(body, "error-response")
    return str(text) if text else (resp.reason or "")
