"""Tests for data models: Document, Neighbour, Prediction."""

from __future__ import annotations

import dataclasses

import pytest

from knn_text_classifier.models import (
    UNCLASSIFIED,
    Document,
    Neighbour,
    Prediction,
)

# ---------------------------------------------------------------------------
# Document tests
# ---------------------------------------------------------------------------


class TestDocument:
    """Tests for the immutable Document value."""

    def test_defaults(self) -> None:
        doc = Document()
        assert doc.class_id == UNCLASSIFIED
        assert doc.is_empty
        assert doc.norm == 0.0

    def test_weights_are_read_only(self) -> None:
        doc = Document(class_id=0, weights={1: 1.0})
        with pytest.raises(TypeError):
            doc.weights[2] = 0.5  # type: ignore[index]

    def test_weights_are_copied(self) -> None:
        weights = {1: 1.0}
        doc = Document(class_id=0, weights=weights)
        weights[2] = 3.0
        assert dict(doc.weights) == {1: 1.0}

    def test_fields_are_frozen(self) -> None:
        doc = Document(class_id=0, weights={})
        with pytest.raises(dataclasses.FrozenInstanceError):
            doc.class_id = 1  # type: ignore[misc]

    def test_with_class(self) -> None:
        draft = Document(weights={0: 0.6, 1: 0.8})
        labeled = draft.with_class(4)
        assert labeled.class_id == 4
        assert labeled.weights == draft.weights
        assert draft.class_id == UNCLASSIFIED

    def test_norm(self) -> None:
        assert Document(weights={0: 0.6, 1: 0.8}).norm == pytest.approx(1.0)

    def test_str(self) -> None:
        assert str(Document(class_id=2, weights={0: 1.0})) == "Document(class: 2, terms: {0: 1.0})"

    def test_compared_by_value_but_unhashable(self) -> None:
        assert Document(class_id=0, weights={1: 1.0}) == Document(class_id=0, weights={1: 1.0})
        with pytest.raises(TypeError):
            hash(Document(class_id=0, weights={1: 1.0}))


# ---------------------------------------------------------------------------
# Neighbour / Prediction tests
# ---------------------------------------------------------------------------


class TestNeighbour:
    def test_class_id_comes_from_document(self) -> None:
        n = Neighbour(doc_id=3, document=Document(class_id=1, weights={0: 1.0}), similarity=0.5)
        assert n.class_id == 1
        assert n.label is None

    def test_unhashable(self) -> None:
        with pytest.raises(TypeError):
            hash(Neighbour(doc_id=0, document=Document(), similarity=1.0))


class TestPrediction:
    """Tests for the Prediction result."""

    @pytest.fixture
    def prediction(self) -> Prediction:
        a = Document(class_id=0, weights={0: 1.0})
        b = Document(class_id=1, weights={0: 1.0})
        return Prediction(
            label="animal",
            class_id=0,
            k=3,
            neighbours=[
                Neighbour(0, a, 0.9, "animal"),
                Neighbour(2, b, 0.5, "finance"),
                Neighbour(1, a, 0.4, "animal"),
            ],
            votes={"animal": 2, "finance": 1},
        )

    def test_confidence(self, prediction: Prediction) -> None:
        assert prediction.has_prediction
        assert prediction.confidence == pytest.approx(2 / 3)
        assert prediction.top_similarity == 0.9

    def test_no_prediction(self) -> None:
        p = Prediction(label=None, k=3)
        assert not p.has_prediction
        assert p.confidence == 0.0
        assert p.top_similarity == 0.0
        assert p.to_dict()["label"] is None

    def test_to_dict(self, prediction: Prediction) -> None:
        d = prediction.to_dict()
        assert d["label"] == "animal"
        assert d["k"] == 3
        assert d["confidence"] == 0.6667
        assert list(d["votes"]) == ["animal", "finance"]
        assert d["neighbours"][1] == {"doc_id": 2, "label": "finance", "similarity": 0.5}
