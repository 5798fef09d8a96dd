"""Input processing for reading word lists."""

from sonacards.input.words import (
    COMMENT_PREFIX,
    is_commented,
    read_word_rows,
    read_words,
)

__all__ = [
    "COMMENT_PREFIX",
    "is_commented",
    "read_word_rows",
    "read_words",
]
