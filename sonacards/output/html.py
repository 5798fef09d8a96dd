"""Text cleanup for card HTML."""

import html
import re

from bs4 import BeautifulSoup  # type: ignore

FIELD_SEPARATOR = "|"


def clean_text(text: object) -> str:
    """Reduce upstream text to plain, single-line text safe for a card field.

    Strips any markup the dictionary embeds, collapses whitespace, escapes what
    is left, and replaces the field separator so a card always stays one record.
    """
    if text is None:
        return ""
    raw = str(text)
    if "<" in raw or "&" in raw:
        raw = BeautifulSoup(raw, "html.parser").get_text()
    raw = re.sub(r"\s+", " ", raw).strip()
    return html.escape(raw, quote=False).replace(FIELD_SEPARATOR, "/")


def tag(name: str, content: str, style: str = "") -> str:
    attrs = f' style="{style}"' if style else ""
    return f"<{name}{attrs}>{content}</{name}>"


def html_list(name: str, items) -> str:
    return f"<{name}>" + "".join(tag("li", item) for item in items) + f"</{name}>"
