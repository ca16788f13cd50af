"""k-nearest-neighbours text classification over a cosine vector space.

Training documents are vectorized into unit-length term vectors and
indexed by term. A query is scored only against documents that share at
least one term with it (found through the postings index); everything
else has similarity 0 and is never materialized. The ``k`` most similar
documents then vote on the label.

Ordering is deterministic:

- neighbours: similarity descending, then document id ascending
- votes: count descending, then summed similarity of the class's
  neighbours descending, then class id ascending

The classifier is safe to share between threads. By default a ``train``
call updates the vocabulary, class registry, corpus and postings as four
separate critical sections, so a concurrent prediction may see a document
before all of its postings exist. With ``strict_training=True`` a whole
training call is atomic with respect to predictions.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from contextlib import nullcontext
from typing import ContextManager, Iterable, Optional

from .models import UNKNOWN_TERM, Document, Neighbour, Prediction
from .preprocessing import Stemmer, TextPreprocessor
from .stores import ClassRegistry, CorpusStore, PostingsIndex, RWLock, Vocabulary
from .vectorizer import DocumentVectorizer

logger = logging.getLogger(__name__)


class KNNClassifier:
    """Text classifier voting among the k most similar training examples.

    Example::

        knn = KNNClassifier()
        knn.train("cats are great", "animal")
        knn.train("stocks rose today", "finance")

        knn.predict("cats and dogs", k=1)      # "animal"
        knn.predict("nothing in common", k=1)  # None

    Args:
        stemmer: Stemming function for training and queries. Defaults to
            the Porter stemmer.
        strict_training: Make each ``train`` call atomic with respect to
            concurrent predictions.
    """

    def __init__(
        self,
        stemmer: Stemmer | None = None,
        strict_training: bool = False,
    ) -> None:
        self._vocabulary = Vocabulary()
        self._classes = ClassRegistry()
        self._corpus = CorpusStore()
        self._postings = PostingsIndex()
        self._vectorizer = DocumentVectorizer(
            vocabulary=self._vocabulary,
            preprocessor=TextPreprocessor(stemmer=stemmer),
        )
        self._strict = strict_training
        self._training_lock = RWLock()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def strict_training(self) -> bool:
        return self._strict

    @property
    def vectorizer(self) -> DocumentVectorizer:
        return self._vectorizer

    @property
    def document_count(self) -> int:
        return len(self._corpus)

    @property
    def vocabulary_size(self) -> int:
        return len(self._vocabulary)

    @property
    def classes(self) -> list[str]:
        """Known labels in class-id order."""
        return self._classes.keys()

    @property
    def is_trained(self) -> bool:
        return len(self._corpus) > 0

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    def train(self, text: str, label: str) -> int:
        """Add one labeled example.

        Args:
            text: Example text. Empty text is stored as an empty vector that
                can never be a neighbour.
            label: Class label.

        Returns:
            The permanent id of the stored document.
        """
        with self._training_section(write=True):
            draft = self._vectorizer.vectorize(text, admit_terms=True)
            document = draft.with_class(self._classes.lookup_or_insert(label))
            doc_id = self._corpus.append(document)
            self._postings.add(doc_id, document.weights.keys())

        logger.debug(
            "Trained document %d (label=%r, terms=%d)",
            doc_id, label, len(document.weights),
        )
        return doc_id

    def train_many(self, examples: Iterable[tuple[str, str]]) -> list[int]:
        """Train ``(text, label)`` pairs in order and return their ids."""
        return [self.train(text, label) for text, label in examples]

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    def predict(self, text: str, k: int) -> Optional[str]:
        """Predict the label of ``text`` by majority vote of ``k`` neighbours.

        Args:
            text: Text to classify.
            k: Number of neighbours that vote.

        Returns:
            The winning label, or ``None`` when there is no neighbour to
            vote (``k <= 0``, nothing trained, or no shared terms).
        """
        return self.classify(text, k).label

    def predict_many(self, texts: Iterable[str], k: int) -> list[Optional[str]]:
        return [self.predict(text, k) for text in texts]

    def classify(self, text: str, k: int) -> Prediction:
        """Classify ``text`` and return the vote in full.

        Args:
            text: Text to classify.
            k: Number of neighbours that vote.

        Returns:
            Prediction with the label (or ``None``), the top-k neighbours
            in rank order and the vote count per label.
        """
        if k <= 0:
            logger.debug("No prediction: k=%d", k)
            return Prediction(label=None, k=k)

        top = self.neighbours(text, k)
        if not top:
            logger.debug("No prediction: query shares no terms with the corpus")
            return Prediction(label=None, k=k)

        counts: dict[int, int] = defaultdict(int)
        mass: dict[int, float] = defaultdict(float)
        for n in top:
            counts[n.class_id] += 1
            mass[n.class_id] += n.similarity

        winner = min(counts, key=lambda c: (-counts[c], -mass[c], c))
        votes = {n.label: counts[n.class_id] for n in top}
        label = self._classes.key_for(winner)

        logger.debug("Predicted %r from %d neighbour(s), votes=%s", label, len(top), votes)
        return Prediction(
            label=label,
            class_id=winner,
            k=k,
            neighbours=top,
            votes=votes,
        )

    def neighbours(self, text: str, k: int | None = None) -> list[Neighbour]:
        """Rank trained documents by cosine similarity to ``text``.

        Only documents sharing at least one term with the query are
        returned.

        Args:
            text: Query text.
            k: Keep only the ``k`` best; all matches when ``None``.

        Returns:
            Neighbours ordered by similarity descending, then document id.
        """
        if k is not None and k <= 0:
            return []

        with self._training_section(write=False):
            query = self._vectorizer.vectorize(text, admit_terms=False)
            terms = [t for t in query.weights if t != UNKNOWN_TERM]
            postings = self._postings.lookup_many(terms)
            candidates = {doc_id for doc_ids in postings.values() for doc_id in doc_ids}
            documents = self._corpus.get_many(candidates)

        similarities: dict[int, float] = defaultdict(float)
        for term_id, doc_ids in postings.items():
            query_weight = query.weights[term_id]
            for doc_id in doc_ids:
                similarities[doc_id] += documents[doc_id].weights[term_id] * query_weight

        ranked = sorted(
            (item for item in similarities.items() if item[1] > 0),
            key=lambda item: (-item[1], item[0]),
        )
        if k is not None:
            ranked = ranked[:k]

        return [
            Neighbour(
                doc_id=doc_id,
                document=documents[doc_id],
                similarity=similarity,
                label=self._classes.key_for(documents[doc_id].class_id),
            )
            for doc_id, similarity in ranked
        ]

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def document(self, doc_id: int) -> Document:
        """Return a trained document by id.

        Raises:
            IndexError: If no document has that id.
        """
        return self._corpus.get(doc_id)

    def label_of(self, doc_id: int) -> Optional[str]:
        return self._classes.key_for(self._corpus.get(doc_id).class_id)

    def postings(self, stem: str) -> tuple[int, ...]:
        """Ids of the documents containing ``stem`` (already stemmed)."""
        term_id = self._vocabulary.lookup(stem)
        if term_id == UNKNOWN_TERM:
            return ()
        return self._postings.get(term_id)

    def stats(self) -> dict:
        """Sizes of the trained state and documents per label."""
        per_class = self._corpus.class_counts()
        return {
            "documents": len(self._corpus),
            "vocabulary": len(self._vocabulary),
            "indexed_terms": len(self._postings),
            "classes": {
                label: per_class.get(class_id, 0)
                for class_id, label in enumerate(self._classes.keys())
            },
            "strict_training": self._strict,
        }

    def _training_section(self, write: bool) -> ContextManager[None]:
        if not self._strict:
            return nullcontext()
        return self._training_lock.write() if write else self._training_lock.read()

    def __repr__(self) -> str:
        return (
            f"KNNClassifier(documents={self.document_count}, "
            f"vocabulary={self.vocabulary_size}, classes={len(self._classes)})"
        )

