"""Word list loading for three-word gallery codes."""

from __future__ import annotations

import logging
import re
from importlib import resources
from pathlib import Path

logger = logging.getLogger(__name__)

BUNDLED_WORD_LIST = "common_german_words.txt"

# Words end up in gallery ids, so they must stay inside the id alphabet.
_ID_SAFE_WORD = re.compile(r"[a-z0-9]+")


def parse_word_list(text: str) -> list[str]:
    """Turn word list text into lower-cased, de-duplicated, id-safe words.

    Blank lines and words that could not appear in a gallery id (umlauts,
    punctuation, separators) are skipped.
    """
    words: list[str] = []
    seen: set[str] = set()
    skipped = 0

    for line in text.splitlines():
        word = line.strip().lower()
        if not word:
            continue
        if not _ID_SAFE_WORD.fullmatch(word):
            skipped += 1
            continue
        if word not in seen:
            seen.add(word)
            words.append(word)

    if skipped:
        logger.debug(f"Skipped {skipped} words that are not usable in gallery ids")
    return words


def load_word_list(path: Path | None = None) -> list[str]:
    """Load the word list used for random gallery ids.

    Args:
        path: Custom word list, one word per line.  The bundled German list
            is used when ``None``.

    Returns:
        The usable words.

    Raises:
        ValueError: If the list contains no usable words.
    """
    if path is None:
        text = resources.files("fotostand.data").joinpath(BUNDLED_WORD_LIST).read_text(
            encoding="utf-8"
        )
        source = BUNDLED_WORD_LIST
    else:
        text = Path(path).read_text(encoding="utf-8")
        source = str(path)

    words = parse_word_list(text)
    if not words:
        raise ValueError(f"Word list {source} contains no usable words")

    logger.info(f"Loaded {len(words)} words from {source}")
    return words
