"""Client used by the card driver to talk to the caching proxy."""

from typing import Any, Optional

import requests
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from sonacards.common.logging import log
from sonacards.proxy.apis import ERROR_HEADER, SEARCH_TERM_PARAM, STORAGE_ERROR_MARKER, ExternalApi


class WordNotFetched(Exception):
    """The proxy could not provide a document for a word."""

    def __init__(self, word: str, reason: str, status_code: Optional[int] = None) -> None:
        super().__init__(f"No results fetched for {word}: {reason}")
        self.word = word
        self.reason = reason
        self.status_code = status_code


class UpstreamUnavailable(WordNotFetched):
    """Transient failure (proxy unreachable or upstream error); safe to retry."""


class StorageFailure(WordNotFetched):
    """The proxy could not persist a result. Later words would fail the same way."""


class ProxyClient:
    """Fetch word documents through the proxy listener.

    ``session`` can be any object with a requests-style ``get``, which lets
    tests pass a FastAPI TestClient.
    """

    def __init__(
        self,
        base_url: str,
        session: Optional[Any] = None,
        timeout: Optional[float] = None,
        retries: int = 0,
        wait=None,
        verbose: bool = False,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.retries = max(0, retries)
        self.wait = wait if wait is not None else wait_exponential(multiplier=1, min=1, max=8)
        self.verbose = verbose

    def fetch(self, api: ExternalApi, word: str) -> Any:
        """Return the decoded document for a word. Raises WordNotFetched."""
        if self.retries == 0:
            return self._fetch_once(api, word)
        retrying = Retrying(
            reraise=True,
            stop=stop_after_attempt(self.retries + 1),
            wait=self.wait,
            retry=retry_if_exception_type(UpstreamUnavailable),
            before_sleep=self._log_retry,
        )
        return retrying(self._fetch_once, api, word)

    def _log_retry(self, retry_state) -> None:
        exc = retry_state.outcome.exception()
        log("client", "retry", f"{exc} (attempt {retry_state.attempt_number}/{self.retries + 1})", self.verbose)

    def _fetch_once(self, api: ExternalApi, word: str) -> Any:
        url = f"{self.base_url}/{api.value}"
        try:
            resp = self.session.get(url, params={SEARCH_TERM_PARAM: word}, timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamUnavailable(word, f"proxy request failed: {e}") from e

        if resp.status_code == 200:
            return resp.json()

        reason = (resp.text or "").strip() or f"status {resp.status_code}"
        if resp.headers.get(ERROR_HEADER) == STORAGE_ERROR_MARKER:
            raise StorageFailure(word, reason, resp.status_code)
        if resp.status_code >= 500 or resp.status_code == 429:
            raise UpstreamUnavailable(word, reason, resp.status_code)
        raise WordNotFetched(word, reason, resp.status_code)
