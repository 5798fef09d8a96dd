"""Caching fetch proxy in front of the dictionary API."""

from sonacards.proxy.apis import (
    LANG_CODES,
    SEARCH_TERM_PARAM,
    ExternalApi,
    parse_api,
    url_builder_for,
)
from sonacards.proxy.resolver import (
    CachingFetchProxy,
    ResolveResult,
    ResolveStatus,
    UnknownApiError,
    UpstreamClient,
    UpstreamError,
)

__all__ = [
    # apis
    "LANG_CODES",
    "SEARCH_TERM_PARAM",
    "ExternalApi",
    "parse_api",
    "url_builder_for",
    # resolver
    "CachingFetchProxy",
    "ResolveResult",
    "ResolveStatus",
    "UnknownApiError",
    "UpstreamClient",
    "UpstreamError",
]
