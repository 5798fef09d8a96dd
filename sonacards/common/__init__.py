"""Common utilities shared by the proxy and the card driver."""

from sonacards.common.cache import (
    CacheEntryNotFound,
    CacheKey,
    CacheStore,
    FileCacheStore,
    InvalidTermError,
    MemoryCacheStore,
    cache_location,
)
from sonacards.common.logging import (
    log,
    log_error,
    set_thread_log_context,
    setup_thread_prefixed_stdout,
)

__all__ = [
    # cache
    "CacheEntryNotFound",
    "CacheKey",
    "CacheStore",
    "FileCacheStore",
    "InvalidTermError",
    "MemoryCacheStore",
    "cache_location",
    # logging
    "log",
    "log_error",
    "set_thread_log_context",
    "setup_thread_prefixed_stdout",
]
