"""External dictionary APIs served through the proxy."""

from enum import Enum
from typing import Callable, Dict, Mapping, Optional

import requests


SEARCH_TERM_PARAM = "word"

# Marks proxy responses for local failures, which share no status with upstream
ERROR_HEADER = "X-Sonacards-Error"
STORAGE_ERROR_MARKER = "storage"

# https://en.wikipedia.org/wiki/List_of_ISO_639-2_codes
LANG_CODES = ("eng", "fra", "rus", "ukr")


class ExternalApi(str, Enum):
    SONAPI_V2 = "sonapi_v2"


UrlBuilder = Callable[[str], str]


def _quote_term(term: str) -> str:
    return requests.utils.quote(term, safe="")


def sonapi_v2_url(term: str) -> str:
    """Get the Sõnaveeb v2 lookup URL for a word."""
    return f"https://api.sonapi.ee/v2/{_quote_term(term)}"


DEFAULT_URL_BUILDERS: Dict[ExternalApi, UrlBuilder] = {
    ExternalApi.SONAPI_V2: sonapi_v2_url,
}

_missing = set(ExternalApi) - set(DEFAULT_URL_BUILDERS)
if _missing:
    raise RuntimeError(f"No URL builder for: {sorted(a.value for a in _missing)}")


def parse_api(name: str) -> ExternalApi:
    """Map an identifier like "sonapi_v2" to its enum member."""
    try:
        return ExternalApi(name)
    except ValueError:
        known = ", ".join(a.value for a in ExternalApi)
        raise ValueError(f"Unknown API '{name}' (known: {known})") from None


def template_url_builder(template: str) -> UrlBuilder:
    """Build URLs from a template containing a {term} placeholder."""
    if "{term}" not in template:
        raise ValueError(f"URL template must contain '{{term}}': {template}")

    def build(term: str) -> str:
        return template.replace("{term}", _quote_term(term))

    return build


def url_builder_for(api: ExternalApi, templates: Optional[Mapping[str, str]] = None) -> UrlBuilder:
    """Get the URL builder for an API, preferring a configured template."""
    if templates and api.value in templates:
        return template_url_builder(templates[api.value])
    return DEFAULT_URL_BUILDERS[api]
