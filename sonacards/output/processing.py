"""Card creation pipeline.

Two passes over the word list, both through the proxy:
1. Warm-up: fetch every word once so all documents are cached. Failures are
   collected per word; a storage failure stops the pass at once.
2. Render: only if every word was fetched, fetch again (now from the cache)
   and render one card per word.

The output file is written in one go at the end, so a failed batch never
leaves a partial file behind.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from sonacards.common.config import ProxyConfig
from sonacards.common.logging import log, log_error, set_thread_log_context
from sonacards.input.words import read_words
from sonacards.output.cards import ANKI_HEADER, DEFAULT_LANG, render_card
from sonacards.proxy.apis import ExternalApi
from sonacards.proxy.client import ProxyClient, StorageFailure, WordNotFetched
from sonacards.proxy.server import ProxyServer, build_proxy, create_app

LOG_PREFIX = "cards"


@dataclass
class BatchResult:
    """Outcome of one card creation run."""
    words: List[str]
    failures: List[WordNotFetched] = field(default_factory=list)
    cards_written: int = 0
    output_path: Optional[Path] = None

    @property
    def written(self) -> bool:
        return self.output_path is not None

    @property
    def failed_words(self) -> List[str]:
        return [f.word for f in self.failures]


def warm_cache(client: ProxyClient, api: ExternalApi, words: List[str], verbose: bool = False) -> List[WordNotFetched]:
    """Fetch every word once. Returns the per-word failures.

    Raises StorageFailure as soon as the proxy reports it cannot persist results.
    """
    log(LOG_PREFIX, "fetch", f"Will fetch {len(words)} words", verbose)
    failures: List[WordNotFetched] = []
    try:
        for word in words:
            set_thread_log_context(word)
            try:
                client.fetch(api, word)
            except StorageFailure:
                raise
            except WordNotFetched as e:
                log_error(LOG_PREFIX, f"Word {word} was not fetched. {e.reason}")
                failures.append(e)
    finally:
        set_thread_log_context("")
    return failures


def render_cards(
    client: ProxyClient,
    api: ExternalApi,
    words: List[str],
    lang: str = DEFAULT_LANG,
    verbose: bool = False,
) -> List[str]:
    """Fetch each (already cached) word again and render its card."""
    records: List[str] = []
    try:
        for word in words:
            set_thread_log_context(word)
            document = client.fetch(api, word)
            log(LOG_PREFIX, "card", f"Creating card for {word}", verbose)
            records.append(render_card(document, lang=lang, word=word))
    finally:
        set_thread_log_context("")
    return records


def write_anki_file(output_path: Path, records: List[str]) -> Path:
    """Write the header block and all records to the import file."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    body = "".join(record + "\n" for record in records)
    output_path.write_text(ANKI_HEADER + body, encoding="utf-8")
    return output_path


def create_cards(
    input_path: Path,
    output_path: Path,
    client: ProxyClient,
    api: ExternalApi = ExternalApi.SONAPI_V2,
    lang: str = DEFAULT_LANG,
    verbose: bool = False,
) -> BatchResult:
    """Run both passes and write the import file if every word was fetched."""
    words = read_words(input_path, verbose=verbose)
    result = BatchResult(words=words)

    try:
        result.failures = warm_cache(client, api, words, verbose=verbose)
        if result.failures:
            log_error(LOG_PREFIX, "Some words were not fetched, skipping card creation.")
            return result
        records = render_cards(client, api, words, lang=lang, verbose=verbose)
    except WordNotFetched as e:
        log_error(LOG_PREFIX, f"Word {e.word} was not fetched. {e.reason}")
        log_error(LOG_PREFIX, "Aborting card creation.")
        result.failures.append(e)
        return result

    result.output_path = write_anki_file(output_path, records)
    result.cards_written = len(records)
    log(LOG_PREFIX, "file", f"Created: {output_path} ({len(records)} cards)")
    return result


def process_word_list(
    config: ProxyConfig,
    input_path: Path,
    output_path: Path,
    lang: str = DEFAULT_LANG,
    retries: int = 0,
) -> BatchResult:
    """Start the proxy in-process, create the cards, and shut it down."""
    api = config.apis[0]
    server = ProxyServer(create_app(build_proxy(config)), port=config.port, verbose=config.verbose)
    with server:
        client = ProxyClient(server.base_url, retries=retries, verbose=config.verbose)
        return create_cards(input_path, output_path, client, api=api, lang=lang, verbose=config.verbose)
