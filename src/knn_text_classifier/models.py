"""Data models for the k-nearest-neighbours text classifier."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

# Term id for stems never seen during training. No postings list uses it.
UNKNOWN_TERM = -1

# Class id of a document draft that has not been labeled yet.
UNCLASSIFIED = -1


@dataclass(frozen=True)
class Document:
    """A vectorized document.

    ``weights`` maps term ids to non-negative weights whose Euclidean norm
    is 1.0, or is empty for text without a single word.
    """

    class_id: int = UNCLASSIFIED
    weights: Mapping[int, float] = field(default_factory=dict)

    # Compared by value but not hashable: weights is a read-only dict view.
    __hash__ = None  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if not isinstance(self.weights, MappingProxyType):
            object.__setattr__(self, "weights", MappingProxyType(dict(self.weights)))

    @property
    def is_empty(self) -> bool:
        return not self.weights

    @property
    def norm(self) -> float:
        """Euclidean norm of the weights (1.0 unless empty)."""
        return sum(w * w for w in self.weights.values()) ** 0.5

    def with_class(self, class_id: int) -> "Document":
        """Return a copy of this document assigned to ``class_id``."""
        return Document(class_id=class_id, weights=self.weights)

    def __str__(self) -> str:
        return f"Document(class: {self.class_id}, terms: {dict(self.weights)})"


@dataclass(frozen=True)
class Neighbour:
    """A trained document scored against a query."""

    doc_id: int
    document: Document
    similarity: float
    label: Optional[str] = None

    __hash__ = None  # type: ignore[assignment]

    @property
    def class_id(self) -> int:
        return self.document.class_id


@dataclass
class Prediction:
    """Outcome of classifying one text.

    ``label`` is ``None`` when no trained document shares a term with the
    query (or ``k`` was not positive): the "no prediction" outcome.
    """

    label: Optional[str]
    class_id: int = UNCLASSIFIED
    k: int = 0
    neighbours: list[Neighbour] = field(default_factory=list)
    votes: dict[str, int] = field(default_factory=dict)

    @property
    def has_prediction(self) -> bool:
        return self.label is not None

    @property
    def confidence(self) -> float:
        """Share of the top-k neighbours that voted for the winning label."""
        if self.label is None or not self.neighbours:
            return 0.0
        return self.votes.get(self.label, 0) / len(self.neighbours)

    @property
    def top_similarity(self) -> float:
        return self.neighbours[0].similarity if self.neighbours else 0.0

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "k": self.k,
            "confidence": round(self.confidence, 4),
            "votes": dict(sorted(self.votes.items(), key=lambda x: (-x[1], x[0]))),
            "neighbours": [
                {
                    "doc_id": n.doc_id,
                    "label": n.label,
                    "similarity": round(n.similarity, 6),
                }
                for n in self.neighbours
            ],
        }
