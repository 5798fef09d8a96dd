"""Logging utilities.

Messages are plain prints tagged like "[proxy] [cache-hit] sonapi_v2/kass".
With setup_thread_prefixed_stdout() every line also gets a short thread id
and the word being handled, so proxy worker output and driver output can be
told apart when they interleave.
"""

import sys
import threading
from typing import Dict


_THREAD_IDX_LOCK = threading.Lock()
_THREAD_IDX_MAP: Dict[int, int] = {}
_THREAD_IDX_NEXT = 0

# Thread-local log context (the word currently handled by this thread)
_LOG_CTX = threading.local()

_TAG_EMOJI = {
    "cache-hit": "🎯",
    "cache-miss": "💥",
    "api": "🌐",
    "file": "💾",
    "skip": "⏭️",
    "error": "❌",
}


def set_thread_log_context(word: str = "") -> None:
    """Set the word shown in prefixes for the current thread ("" clears it)."""
    _LOG_CTX.word = word


def log(prefix: str, tag: str, message: str, enabled: bool = True) -> None:
    """Print a tagged message, e.g. log("proxy", "api", "GET ...")."""
    if enabled:
        print(f"[{prefix}] [{tag}] {message}")


def log_error(prefix: str, message: str) -> None:
    """Print a tagged error message to stderr."""
    print(f"[{prefix}] [error] {message}", file=sys.stderr)


def _short_thread_id() -> str:
    global _THREAD_IDX_NEXT
    tid = threading.get_ident()
    # Map OS thread id to small stable index t00..t99
    with _THREAD_IDX_LOCK:
        idx = _THREAD_IDX_MAP.get(tid)
        if idx is None:
            idx = _THREAD_IDX_NEXT
            _THREAD_IDX_MAP[tid] = idx
            _THREAD_IDX_NEXT = (_THREAD_IDX_NEXT + 1) % 100
    return f"t{idx:02d}"


def _emoji_for(line: str) -> str:
    """Emoji for the second bracketed tag of a line, if it has one."""
    rest = line
    for _ in range(2):
        if not rest.startswith("["):
            return ""
        end = rest.find("]")
        if end == -1:
            return ""
        tag = rest[1:end]
        emoji = _TAG_EMOJI.get(tag)
        if emoji:
            return emoji
        rest = rest[end + 1:].lstrip()
    return ""


class _ThreadPrefixedWriter:
    """Wrapper for stdout that adds thread IDs and context to output."""

    def __init__(self, wrapped):
        self._wrapped = wrapped
        self._lock = threading.Lock()

    def _prefix(self) -> str:
        word = getattr(_LOG_CTX, "word", "")
        context = f"[{word}]" if word else "[main]"
        return f"[{_short_thread_id()}] {context} "

    def write(self, s: str) -> int:
        if not isinstance(s, str):
            return 0
        # print() writes the trailing newline separately
        if s == "\n":
            with self._lock:
                self._wrapped.write("\n")
                self._wrapped.flush()
            return 1

        prefix = self._prefix()
        with self._lock:
            lines = s.split("\n")
            for i, line in enumerate(lines):
                if line == "" and i == len(lines) - 1:
                    continue
                emoji = _emoji_for(line)
                self._wrapped.write(prefix + (emoji + " " if emoji else "") + line)
                if i < len(lines) - 1:
                    self._wrapped.write("\n")
            self._wrapped.flush()
        return len(s)

    def flush(self) -> None:
        self._wrapped.flush()

    def isatty(self) -> bool:
        try:
            return bool(self._wrapped.isatty())
        except (AttributeError, ValueError):
            return False


def setup_thread_prefixed_stdout() -> None:
    """Set up thread-prefixed stdout writer (idempotent)."""
    if isinstance(sys.stdout, _ThreadPrefixedWriter):
        return
    try:
        sys.stdout.reconfigure(line_buffering=True)  # type: ignore
    except AttributeError:
        pass
    sys.stdout = _ThreadPrefixedWriter(sys.stdout)  # type: ignore
