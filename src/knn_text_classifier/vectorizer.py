"""Sparse, L2-normalized document vectors keyed by term id."""

from __future__ import annotations

import math
from collections import Counter

from .models import UNCLASSIFIED, Document
from .preprocessing import Stemmer, TextPreprocessor
from .stores import Vocabulary


class DocumentVectorizer:
    """Convert text into ``Document`` weight vectors.

    Each term's weight is its raw count divided by the Euclidean norm of
    the document's count vector, so every non-empty document has unit
    length and the dot product of two documents is their cosine similarity.

    While training (``admit_terms=True``) unseen stems are added to the
    shared vocabulary. At prediction time the vocabulary is only read and
    unseen stems are pooled under ``UNKNOWN_TERM``: they still count toward
    the query's norm but can never match a trained document.

    Args:
        vocabulary: Vocabulary to resolve stems against. A fresh one is
            created when omitted.
        stemmer: Stemming function; ignored if ``preprocessor`` is given.
        preprocessor: Word splitter and stemmer to use.
    """

    def __init__(
        self,
        vocabulary: Vocabulary | None = None,
        stemmer: Stemmer | None = None,
        preprocessor: TextPreprocessor | None = None,
    ) -> None:
        self._vocabulary = vocabulary if vocabulary is not None else Vocabulary()
        self._preprocessor = preprocessor or TextPreprocessor(stemmer=stemmer)

    @property
    def vocabulary(self) -> Vocabulary:
        return self._vocabulary

    def tokenize(self, text: str) -> list[str]:
        """Stems of ``text`` in order."""
        return self._preprocessor.tokenize(text)

    def term_counts(self, text: str, admit_terms: bool = False) -> Counter[int]:
        """Raw occurrence count per term id."""
        stems = self.tokenize(text)
        if not stems:
            return Counter()
        return Counter(self._vocabulary.lookup_many(stems, admit=admit_terms))

    def vectorize(self, text: str, admit_terms: bool = False) -> Document:
        """Build an unlabeled document from text.

        Text without any word yields a document with no weights; nothing is
        divided by a zero norm.

        Args:
            text: Raw text.
            admit_terms: Add unseen stems to the vocabulary.

        Returns:
            A ``Document`` with class id ``UNCLASSIFIED``.
        """
        counts = self.term_counts(text, admit_terms=admit_terms)
        magnitude = math.sqrt(sum(c * c for c in counts.values()))
        if magnitude == 0:
            return Document(class_id=UNCLASSIFIED, weights={})

        return Document(
            class_id=UNCLASSIFIED,
            weights={term_id: count / magnitude for term_id, count in counts.items()},
        )
