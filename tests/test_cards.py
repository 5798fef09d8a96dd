from __future__ import annotations

import pytest

from sonacards.output.cards import (
    headword,
    render_back,
    render_card,
    render_front,
    weighted_translations,
)
from sonacards.output.html import clean_text

from .conftest import make_document


def test_render_card_front_and_back():
    card = render_card(make_document("kass"))

    assert card == (
        "kass<br><ol><li>kass definition<br><ul><li>kass example</li></ul></li></ol>"
        "|"
        '<ol><li>кот, кошка, <span style="opacity: 0.29">котик</span></li></ol>'
    )


def test_translations_are_sorted_by_weight_and_limited_to_five():
    meaning = {
        "translations": {
            "eng": [
                {"words": "a, b", "weight": 0.2},
                {"words": "c", "weight": 1},
                {"words": "d, e, f", "weight": 0.6},
            ]
        }
    }

    words = weighted_translations(meaning, "eng")

    assert words == [("c", 1.0), ("d", 0.6), ("e", 0.6), ("f", 0.6), ("a", 0.2)]


def test_back_uses_selected_language():
    doc = make_document("kass", translations={"eng": [{"words": "cat", "weight": 1}], "rus": [{"words": "кот", "weight": 1}]})
    assert render_back(doc, "eng") == "<ol><li>cat</li></ol>"
    assert render_back(doc, "ukr") == "<ol><li></li></ol>"


def test_render_card_rejects_unknown_language():
    with pytest.raises(ValueError):
        render_card(make_document("kass"), lang="deu")


def test_card_stays_a_single_record():
    doc = make_document("kass", definition="a | b\nsecond <eki-foreign>line</eki-foreign> & more")

    card = render_card(doc)

    assert "\n" not in card
    assert card.count("|") == 1
    assert "a / b second line &amp; more" in render_front(doc)


def test_missing_fields_render_empty_lists():
    assert render_front({"searchResult": [{"meanings": [{}]}]}) == "<ol><li><br><ul></ul></li></ol>"
    assert render_front({"searchResult": []}) == ""


def test_headword_falls_back_to_requested_word():
    assert headword({"estonianWord": "", "requestedWord": "kassi"}) == "kassi"
    assert headword({}, fallback="kass") == "kass"


def test_clean_text_keeps_plain_text():
    assert clean_text("  suur   kass ") == "suur kass"
    assert clean_text(None) == ""
