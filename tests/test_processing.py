from __future__ import annotations

from pathlib import Path

from fastapi.testclient import TestClient
from tenacity import wait_none

from sonacards.common.cache import MemoryCacheStore
from sonacards.output.cards import ANKI_HEADER, render_card
from sonacards.output.processing import create_cards, warm_cache
from sonacards.proxy.apis import DEFAULT_URL_BUILDERS, ExternalApi
from sonacards.proxy.client import ProxyClient, StorageFailure
from sonacards.proxy.resolver import CachingFetchProxy, UpstreamError
from sonacards.proxy.server import create_app

from .conftest import StubUpstream, make_document


def _client_for(proxy, retries=0) -> ProxyClient:
    return ProxyClient("http://testserver", session=TestClient(create_app(proxy)), retries=retries, wait=wait_none())


def _write_words(tmp_path, *words) -> Path:
    path = tmp_path / "words.tsv"
    path.write_text("".join(f"{w}\n" for w in words), encoding="utf-8")
    return path


def test_creates_one_card_per_word_in_input_order(tmp_path, proxy, upstream):
    input_path = _write_words(tmp_path, "kass", "#lehm", "koer")
    output_path = tmp_path / "cards.txt"

    result = create_cards(input_path, output_path, _client_for(proxy))

    assert result.written
    assert result.cards_written == 2
    lines = output_path.read_text(encoding="utf-8").splitlines()
    assert lines[:2] == ANKI_HEADER.splitlines()
    assert lines[2:] == [render_card(make_document("kass")), render_card(make_document("koer"))]
    assert "lehm" not in output_path.read_text(encoding="utf-8")
    assert upstream.terms() == ["kass", "koer"]


def test_missing_word_suppresses_output(tmp_path, proxy, capsys):
    input_path = _write_words(tmp_path, "kass", "puudub")
    output_path = tmp_path / "cards.txt"

    result = create_cards(input_path, output_path, _client_for(proxy))

    assert not result.written
    assert result.failed_words == ["puudub"]
    assert not output_path.exists()
    err = capsys.readouterr().err
    assert "Word puudub was not fetched." in err
    assert "skipping card creation" in err


def test_rerun_is_served_from_cache_with_identical_output(tmp_path, proxy, upstream):
    input_path = _write_words(tmp_path, "kass", "koer")
    first_path = tmp_path / "first.txt"
    second_path = tmp_path / "second.txt"

    create_cards(input_path, first_path, _client_for(proxy))
    calls_after_first = len(upstream.calls)
    create_cards(input_path, second_path, _client_for(proxy))

    assert calls_after_first == 2
    assert len(upstream.calls) == 2
    assert first_path.read_bytes() == second_path.read_bytes()


def test_storage_failure_aborts_warm_up(tmp_path, upstream, sleeps):
    class BrokenStore(MemoryCacheStore):
        def write(self, key, text):
            raise OSError("disk full")

    proxy = CachingFetchProxy(BrokenStore(), DEFAULT_URL_BUILDERS, upstream=upstream, sleep=sleeps)
    input_path = _write_words(tmp_path, "kass", "koer")
    output_path = tmp_path / "cards.txt"

    result = create_cards(input_path, output_path, _client_for(proxy))

    assert not result.written
    assert result.failed_words == ["kass"]
    assert upstream.terms() == ["kass"]
    assert not output_path.exists()


def test_upstream_errors_are_retried_when_asked(tmp_path, store, sleeps):
    upstream = StubUpstream({
        "kass": [UpstreamError("status 503", status_code=503, body="busy"), make_document("kass")],
    })
    proxy = CachingFetchProxy(store, DEFAULT_URL_BUILDERS, upstream=upstream, sleep=sleeps)
    input_path = _write_words(tmp_path, "kass")
    output_path = tmp_path / "cards.txt"

    result = create_cards(input_path, output_path, _client_for(proxy, retries=2))

    assert result.written
    assert upstream.terms() == ["kass", "kass"]


def test_not_found_is_never_retried(tmp_path, proxy, upstream):
    input_path = _write_words(tmp_path, "puudub")

    result = create_cards(input_path, tmp_path / "cards.txt", _client_for(proxy, retries=3))

    assert result.failed_words == ["puudub"]
    assert upstream.terms() == ["puudub"]


def test_upstream_500_is_retried_and_not_taken_for_storage_failure(tmp_path, store, sleeps):
    upstream = StubUpstream({
        "kass": [UpstreamError("status 500", status_code=500, body="oops"), make_document("kass")],
        "koer": make_document("koer"),
    })
    proxy = CachingFetchProxy(store, DEFAULT_URL_BUILDERS, upstream=upstream, sleep=sleeps)
    input_path = _write_words(tmp_path, "kass", "koer")
    output_path = tmp_path / "cards.txt"

    result = create_cards(input_path, output_path, _client_for(proxy, retries=2))

    assert result.written
    assert result.failures == []
    assert upstream.terms() == ["kass", "kass", "koer"]


def test_upstream_500_without_retries_fails_only_that_word(tmp_path, store, sleeps):
    upstream = StubUpstream({
        "kass": UpstreamError("status 500", status_code=500, body="oops"),
        "koer": make_document("koer"),
    })
    proxy = CachingFetchProxy(store, DEFAULT_URL_BUILDERS, upstream=upstream, sleep=sleeps)
    input_path = _write_words(tmp_path, "kass", "koer")

    result = create_cards(input_path, tmp_path / "cards.txt", _client_for(proxy))

    assert result.failed_words == ["kass"]
    assert not any(isinstance(f, StorageFailure) for f in result.failures)
    assert upstream.terms() == ["kass", "koer"]


def test_warm_up_is_quiet_unless_verbose(proxy, capsys):
    warm_cache(_client_for(proxy), ExternalApi.SONAPI_V2, ["kass"])
    assert "Will fetch" not in capsys.readouterr().out

    warm_cache(_client_for(proxy), ExternalApi.SONAPI_V2, ["kass"], verbose=True)
    assert "Will fetch 1 words" in capsys.readouterr().out
