"""Output generation: rendering cards and writing the Anki import file."""

from sonacards.output.cards import (
    ANKI_HEADER,
    DEFAULT_LANG,
    render_back,
    render_card,
    render_front,
    weighted_translations,
)
from sonacards.output.processing import (
    BatchResult,
    create_cards,
    process_word_list,
    render_cards,
    warm_cache,
    write_anki_file,
)

__all__ = [
    # cards
    "ANKI_HEADER",
    "DEFAULT_LANG",
    "render_back",
    "render_card",
    "render_front",
    "weighted_translations",
    # processing
    "BatchResult",
    "create_cards",
    "process_word_list",
    "render_cards",
    "warm_cache",
    "write_anki_file",
]
