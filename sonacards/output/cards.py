"""Anki card rendering for Sõnaveeb lookups.

Card Format:
============
One line per word, front and back separated by a pipe:

FRONT:
- The headword, then <br>
- Per search result, an <ol> with one <li> per meaning:
  the definition, <br>, and a <ul> of examples

BACK:
- Per search result, an <ol> with one <li> per meaning:
  the top translations in the chosen language, heaviest first.
  Weight 1 is shown plainly; lighter ones are faded by opacity.
"""

from typing import Any, Dict, List, Tuple

from sonacards.output.html import FIELD_SEPARATOR, clean_text, html_list, tag
from sonacards.proxy.apis import LANG_CODES

DEFAULT_LANG = "rus"
MAX_TRANSLATIONS = 5
OPACITY_DIVISOR = 1.7

ANKI_HEADER = "#separator:pipe\n#html:true\n"


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def headword(document: Dict[str, Any], fallback: str = "") -> str:
    """The word shown at the top of the card front."""
    for field in ("estonianWord", "requestedWord"):
        value = document.get(field)
        if isinstance(value, str) and value.strip():
            return clean_text(value)
    return clean_text(fallback)


def weighted_translations(meaning: Dict[str, Any], lang: str, limit: int = MAX_TRANSLATIONS) -> List[Tuple[str, float]]:
    """Split translation groups into single words, heaviest first."""
    words: List[Tuple[str, float]] = []
    for group in _as_list(_as_dict(meaning.get("translations")).get(lang)):
        group = _as_dict(group)
        try:
            weight = float(group.get("weight", 1))
        except (TypeError, ValueError):
            weight = 1.0
        for word in str(group.get("words") or "").split(","):
            word = clean_text(word)
            if word:
                words.append((word, weight))
    words.sort(key=lambda item: item[1], reverse=True)
    return words[:limit]


def render_translation(word: str, weight: float) -> str:
    if weight == 1:
        return word
    return tag("span", word, style=f"opacity: {weight / OPACITY_DIVISOR:.2f}")


def render_front(document: Dict[str, Any]) -> str:
    parts: List[str] = []
    for result in _as_list(document.get("searchResult")):
        meanings: List[str] = []
        for meaning in _as_list(_as_dict(result).get("meanings")):
            meaning = _as_dict(meaning)
            examples = [clean_text(e) for e in _as_list(meaning.get("examples"))]
            meanings.append(clean_text(meaning.get("definition")) + "<br>" + html_list("ul", examples))
        parts.append(html_list("ol", meanings))
    return "".join(parts)


def render_back(document: Dict[str, Any], lang: str = DEFAULT_LANG) -> str:
    parts: List[str] = []
    for result in _as_list(document.get("searchResult")):
        meanings: List[str] = []
        for meaning in _as_list(_as_dict(result).get("meanings")):
            translations = weighted_translations(_as_dict(meaning), lang)
            meanings.append(", ".join(render_translation(w, weight) for w, weight in translations))
        parts.append(html_list("ol", meanings))
    return "".join(parts)


def render_card(document: Dict[str, Any], lang: str = DEFAULT_LANG, word: str = "") -> str:
    """Render one document as a single pipe-delimited card record."""
    if lang not in LANG_CODES:
        raise ValueError(f"Unsupported translation language '{lang}' (choose from {', '.join(LANG_CODES)})")
    front = f"{headword(document, word)}<br>{render_front(document)}"
    return f"{front}{FIELD_SEPARATOR}{render_back(document, lang)}"
