"""Word splitting and stemming for the vector space.

Text is segmented into maximal runs of Unicode letters and numbers; every
other character (punctuation, whitespace, underscores, combining marks)
separates words. Each word is then reduced to a stem by an injected
stemmer, a plain ``str -> str`` callable. The NLTK stemmers are offered
by name so callers never have to import NLTK themselves.

Example::

    stem = get_stemmer("porter")
    splitter = TextPreprocessor(stemmer=stem)
    splitter.tokenize("Cats and dogs!")   # ["cat", "and", "dog"]
"""

from __future__ import annotations

import re
from typing import Callable

from nltk.stem import LancasterStemmer, PorterStemmer, SnowballStemmer

Stemmer = Callable[[str], str]

# Letters (L*) and numbers (N*): \w without the underscore.
_WORD_RE = re.compile(r"[^\W_]+")


def split_words(text: str) -> list[str]:
    """Split text into runs of Unicode letters and digits."""
    return _WORD_RE.findall(text)


def lowercase_stemmer(word: str) -> str:
    """Identity stemmer that only folds case."""
    return word.lower()


def _porter() -> Stemmer:
    # Published algorithm, without the NLTK departures.
    return PorterStemmer(mode=PorterStemmer.ORIGINAL_ALGORITHM).stem


def _snowball() -> Stemmer:
    return SnowballStemmer("english").stem


def _lancaster() -> Stemmer:
    stemmer = LancasterStemmer()
    # stem() builds the rule table lazily and is not safe to race on.
    stemmer.parseRules()
    return stemmer.stem


_STEMMERS: dict[str, Callable[[], Stemmer]] = {
    "porter": _porter,
    "snowball": _snowball,
    "lancaster": _lancaster,
    "lowercase": lambda: lowercase_stemmer,
}

STEMMER_NAMES: tuple[str, ...] = tuple(_STEMMERS)


def get_stemmer(name: str = "porter") -> Stemmer:
    """Build a stemmer function by name.

    Args:
        name: One of ``porter``, ``snowball``, ``lancaster`` or ``lowercase``
            (case-insensitive).

    Returns:
        A deterministic ``str -> str`` stemming function.

    Raises:
        ValueError: If the name is not a known stemmer.
    """
    factory = _STEMMERS.get(name.strip().lower())
    if factory is None:
        raise ValueError(
            f"Unknown stemmer '{name}'. "
            f"Supported stemmers: {', '.join(STEMMER_NAMES)}"
        )
    return factory()


class TextPreprocessor:
    """Turn raw text into the stems that make up a document.

    Args:
        stemmer: Stemming function applied to every word. Defaults to the
            Porter stemmer.
    """

    def __init__(self, stemmer: Stemmer | None = None) -> None:
        self._stem = stemmer or get_stemmer("porter")

    @property
    def stemmer(self) -> Stemmer:
        return self._stem

    def tokenize(self, text: str) -> list[str]:
        """Split text into words and stem each one.

        Args:
            text: Raw input text. May be empty.

        Returns:
            Stems in text order, duplicates preserved.
        """
        if not text:
            return []
        return [self._stem(word) for word in split_words(text)]
