"""Caching fetch proxy for the dictionary API.

A request is answered from the cache when possible. Otherwise the proxy
sleeps for the throttle delay, fetches upstream, and caches the document if
it has results. Nothing is retried here and "not found" is never cached, so a
later run can still pick up a term once upstream has it.
"""

import json
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional

import requests

from sonacards.common.cache import CacheKey, CacheStore, InvalidTermError, validate_term
from sonacards.common.logging import log, log_error
from sonacards.proxy.apis import ExternalApi, UrlBuilder

LOG_PREFIX = "proxy"

NO_TERM_MESSAGE = "No search term supplied."
INVALID_TERM_MESSAGE = "Invalid search term."
NOT_FOUND_MESSAGE = "Search term not found."
STORAGE_ERROR_MESSAGE = "Failed to persist search result."


class ResolveStatus(str, Enum):
    OK = "ok"
    BAD_REQUEST = "bad_request"
    NOT_FOUND = "not_found"
    UPSTREAM_ERROR = "upstream_error"
    STORAGE_ERROR = "storage_error"


@dataclass(frozen=True)
class ResolveResult:
    """Outcome of one resolve call. ``body`` is the JSON text on success."""
    status: ResolveStatus
    body: Optional[str] = None
    detail: str = ""
    upstream_status: Optional[int] = None
    from_cache: bool = False

    @property
    def document(self) -> Any:
        if self.body is None:
            return None
        return json.loads(self.body)


class UnknownApiError(LookupError):
    """Raised when asked for an API the proxy was not configured to serve."""


class UpstreamError(Exception):
    """Transport, HTTP, or decoding failure talking to the dictionary API."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class UpstreamClient:
    """Fetches JSON documents from the dictionary API over HTTP."""

    def __init__(self, timeout: Optional[float] = 20.0, session: Optional[requests.Session] = None) -> None:
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json", "User-Agent": "sonacards/1.0"})

    def get_json(self, url: str) -> Any:
        """GET a URL and decode its JSON body. Raises UpstreamError."""
        try:
            resp = self.session.get(url, timeout=self.timeout, allow_redirects=False)
        except requests.RequestException as e:
            raise UpstreamError(f"Request to {url} failed: {e}") from e

        if resp.status_code >= 300:
            raise UpstreamError(
                f"Upstream returned status {resp.status_code} for {url}",
                status_code=resp.status_code,
                body=resp.text or "",
            )
        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamError(f"Upstream returned non-JSON body for {url}") from e


def dump_document(document: Any) -> str:
    """Serialize a document the way it is stored in the cache."""
    return json.dumps(document, ensure_ascii=False, indent=2)


def _search_results(document: Any) -> list:
    results = document.get("searchResult") if isinstance(document, dict) else None
    if not isinstance(results, list):
        raise UpstreamError("Upstream document has no searchResult list")
    return results


class CachingFetchProxy:
    """Resolve (api, term) pairs through a write-once cache.

    Holds no state besides the injected store and upstream client, so one
    instance can serve concurrent requests. Two requests for the same
    uncached term both fetch and both write; the last write wins.
    """

    def __init__(
        self,
        store: CacheStore,
        url_builders: Mapping[ExternalApi, UrlBuilder],
        throttle_delay_s: float = 1.0,
        upstream: Optional[UpstreamClient] = None,
        sleep: Callable[[float], None] = time.sleep,
        verbose: bool = False,
    ) -> None:
        self.store = store
        self.url_builders: Dict[ExternalApi, UrlBuilder] = dict(url_builders)
        self.throttle_delay_s = throttle_delay_s
        self.upstream = upstream or UpstreamClient()
        self.sleep = sleep
        self.verbose = verbose

    @property
    def apis(self):
        return tuple(self.url_builders)

    def resolve(self, api: ExternalApi, term: Optional[str]) -> ResolveResult:
        if not term:
            return ResolveResult(ResolveStatus.BAD_REQUEST, detail=NO_TERM_MESSAGE)

        builder = self.url_builders.get(api)
        if builder is None:
            raise UnknownApiError(f"API not served by this proxy: {api}")

        key = CacheKey(api.value, term)
        try:
            validate_term(key)
        except InvalidTermError:
            log(LOG_PREFIX, "skip", f"Rejected term {term!r}", self.verbose)
            return ResolveResult(ResolveStatus.BAD_REQUEST, detail=INVALID_TERM_MESSAGE)

        if self.store.exists(key):
            log(LOG_PREFIX, "cache-hit", str(key), self.verbose)
            return ResolveResult(ResolveStatus.OK, body=self.store.read(key), from_cache=True)

        log(LOG_PREFIX, "cache-miss", str(key), self.verbose)
        if self.throttle_delay_s > 0:
            self.sleep(self.throttle_delay_s)

        url = builder(term)
        log(LOG_PREFIX, "api", f"HTTP request to external API: {url}")
        try:
            document = self.upstream.get_json(url)
            results = _search_results(document)
        except UpstreamError as e:
            log_error(LOG_PREFIX, f"{key}: {e}")
            return ResolveResult(
                ResolveStatus.UPSTREAM_ERROR,
                detail=e.body or str(e),
                upstream_status=e.status_code,
            )

        if len(results) == 0:
            log(LOG_PREFIX, "skip", f"No results for {key}", self.verbose)
            return ResolveResult(ResolveStatus.NOT_FOUND, detail=NOT_FOUND_MESSAGE)

        body = dump_document(document)
        try:
            self.store.write(key, body)
        except OSError as e:
            log_error(LOG_PREFIX, f"Could not write cache entry for {key}: {e}")
            return ResolveResult(ResolveStatus.STORAGE_ERROR, detail=STORAGE_ERROR_MESSAGE)
        log(LOG_PREFIX, "file", f"Saved: {key}", self.verbose)
        return ResolveResult(ResolveStatus.OK, body=body)
