from __future__ import annotations

from urllib.parse import unquote

import pytest

from sonacards.common.cache import MemoryCacheStore
from sonacards.proxy.apis import DEFAULT_URL_BUILDERS
from sonacards.proxy.resolver import CachingFetchProxy


def make_document(word: str, definition: str = "", translations=None) -> dict:
    if translations is None:
        translations = {
            "rus": [
                {"words": "кот, кошка", "weight": 1},
                {"words": "котик", "weight": 0.5},
            ]
        }
    return {
        "requestedWord": word,
        "estonianWord": word,
        "searchResult": [
            {
                "wordClasses": ["noun"],
                "wordForms": [
                    {"inflectionType": "22", "code": "SgN", "morphValue": "ainsuse nimetav", "value": word},
                ],
                "meanings": [
                    {
                        "definition": definition or f"{word} definition",
                        "partOfSpeech": [{"code": "s", "value": "nimisõna"}],
                        "examples": [f"{word} example"],
                        "synonyms": [],
                        "translations": translations,
                    }
                ],
                "similarWords": [],
            }
        ],
        "translations": [],
    }


def empty_document(word: str) -> dict:
    return {"requestedWord": word, "estonianWord": word, "searchResult": [], "translations": []}


class StubUpstream:
    """Upstream client stand-in keyed by search term, recording every URL.

    A response can be a document, an exception to raise, or a list of those
    consumed one per call. Unknown terms get an empty result list.
    """

    def __init__(self, responses=None) -> None:
        self.responses = dict(responses or {})
        self.calls: list[str] = []

    def get_json(self, url: str):
        self.calls.append(url)
        term = unquote(url.rsplit("/", 1)[-1])
        response = self.responses.get(term)
        if isinstance(response, list):
            response = response.pop(0) if len(response) > 1 else response[0]
        if isinstance(response, Exception):
            raise response
        if response is None:
            return empty_document(term)
        return response

    def terms(self) -> list[str]:
        return [unquote(url.rsplit("/", 1)[-1]) for url in self.calls]


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def upstream() -> StubUpstream:
    return StubUpstream({"kass": make_document("kass"), "koer": make_document("koer")})


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def store() -> MemoryCacheStore:
    return MemoryCacheStore()


@pytest.fixture
def proxy(store, upstream, sleeps) -> CachingFetchProxy:
    return CachingFetchProxy(
        store=store,
        url_builders=DEFAULT_URL_BUILDERS,
        throttle_delay_s=1.0,
        upstream=upstream,
        sleep=sleeps,
    )
