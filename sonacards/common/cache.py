"""Cache storage for dictionary API responses.

Layout on disk:
    <root>/<api>/<first two chars of term>/<term>.json

Entries are write-once: the proxy only writes a key after ``exists`` said no,
and nothing ever deletes or refreshes an entry.
"""

import os
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Tuple, Union


PREFIX_LENGTH = 2
# Longest file name (in bytes) common filesystems accept
MAX_FILENAME_BYTES = 255
_FORBIDDEN_CHARS = ("/", "\\", "\0")


class CacheEntryNotFound(LookupError):
    """Raised when reading a key that has no stored document."""


class InvalidTermError(ValueError):
    """Raised for terms that cannot be stored as a single cache file."""


@dataclass(frozen=True)
class CacheKey:
    """One cached document: an API identifier plus the exact search term."""
    api: str
    term: str

    def __str__(self) -> str:
        return f"{self.api}/{self.term}"


def cache_prefix(term: str) -> str:
    """Second-level directory name for a term (shorter terms are their own prefix)."""
    return term[:PREFIX_LENGTH]


def cache_location(root: Path, key: CacheKey) -> Path:
    """Get the cache file path for a key.

    Terms are used verbatim, so anything that would not land as a plain file
    inside ``<root>/<api>`` is refused instead of rewritten.
    """
    term = key.term
    if not term or any(ch in term for ch in _FORBIDDEN_CHARS):
        raise InvalidTermError(f"Invalid search term: {term!r}")
    if len(f"{term}.json".encode("utf-8")) > MAX_FILENAME_BYTES:
        raise InvalidTermError(f"Search term too long: {term!r}")
    api_dir = root / key.api
    path = api_dir / cache_prefix(term) / f"{term}.json"
    resolved = Path(os.path.abspath(path))
    if resolved.parent.parent != Path(os.path.abspath(api_dir)):
        raise InvalidTermError(f"Invalid search term: {term!r}")
    return path


def validate_term(key: CacheKey) -> None:
    """Check that a key's term can be stored; raises InvalidTermError."""
    cache_location(Path("."), key)


class CacheStore:
    """Key to JSON-text store. Subclasses provide the backing storage."""

    def exists(self, key: CacheKey) -> bool:
        raise NotImplementedError

    def read(self, key: CacheKey) -> str:
        raise NotImplementedError

    def write(self, key: CacheKey, text: str) -> None:
        raise NotImplementedError


class FileCacheStore(CacheStore):
    """Filesystem-backed store using the two-level directory layout."""

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)

    def path_for(self, key: CacheKey) -> Path:
        return cache_location(self.root, key)

    def ensure_api_dir(self, api: str) -> Path:
        """Create the top-level directory for an API."""
        api_dir = self.root / api
        api_dir.mkdir(parents=True, exist_ok=True)
        return api_dir

    def exists(self, key: CacheKey) -> bool:
        return self.path_for(key).is_file()

    def read(self, key: CacheKey) -> str:
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise CacheEntryNotFound(str(key)) from e

    def write(self, key: CacheKey, text: str) -> None:
        """Write a document, replacing the target in a single rename."""
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise


class MemoryCacheStore(CacheStore):
    """In-process store with the same semantics, used by tests."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[Tuple[str, str], str] = {}

    def exists(self, key: CacheKey) -> bool:
        validate_term(key)
        with self._lock:
            return (key.api, key.term) in self._entries

    def read(self, key: CacheKey) -> str:
        validate_term(key)
        with self._lock:
            try:
                return self._entries[(key.api, key.term)]
            except KeyError as e:
                raise CacheEntryNotFound(str(key)) from e

    def write(self, key: CacheKey, text: str) -> None:
        validate_term(key)
        with self._lock:
            self._entries[(key.api, key.term)] = text

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = [
    "PREFIX_LENGTH",
    "MAX_FILENAME_BYTES",
    "CacheEntryNotFound",
    "InvalidTermError",
    "CacheKey",
    "cache_prefix",
    "cache_location",
    "validate_term",
    "CacheStore",
    "FileCacheStore",
    "MemoryCacheStore",
]
