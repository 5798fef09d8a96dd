"""Word list reading."""

import csv
from pathlib import Path
from typing import List

from sonacards.common.logging import log

COMMENT_PREFIX = "#"


def read_word_rows(input_path: Path) -> List[str]:
    """Read the first column of every non-blank row of a tab-separated file.

    Words are returned exactly as written, surrounding whitespace included.

    Commented rows are kept; use is_commented() / read_words() to skip them.
    """
    words: List[str] = []
    with input_path.open("r", encoding="utf-8", newline="") as f:
        reader = csv.reader(f, delimiter="\t")
        for rec in reader:
            if not rec:
                continue
            word = rec[0]
            if word.strip():
                words.append(word)
    return words


def is_commented(word: str) -> bool:
    return word.startswith(COMMENT_PREFIX)


def read_words(input_path: Path, verbose: bool = False) -> List[str]:
    """Read headwords from a word list, skipping rows that start with '#'.

    Returns words in input order. Duplicates are kept; each gets its own card.
    """
    words: List[str] = []
    for word in read_word_rows(input_path):
        if is_commented(word):
            log("input", "skip", f"Skipping commented word {word}", verbose)
            continue
        words.append(word)
    return words
