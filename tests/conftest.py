"""Shared test fixtures for knn-text-classifier tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from knn_text_classifier import KNNClassifier
from knn_text_classifier.preprocessing import lowercase_stemmer

ANIMAL_DOCS = [
    "cats are great",
    "dogs are great",
    "the cat chased a mouse across the garden",
    "a loyal dog waits for its owner",
    "parrots and canaries are popular pet birds",
    "horses graze in the meadow all afternoon",
]

FINANCE_DOCS = [
    "stocks rose today",
    "the central bank raised interest rates again",
    "bond yields fell as investors sought safety",
    "quarterly earnings beat analyst expectations",
    "the stock market closed higher on friday",
    "investors moved money into government bonds",
]


@pytest.fixture
def knn() -> KNNClassifier:
    """Empty classifier with the default Porter stemmer."""
    return KNNClassifier()


@pytest.fixture
def plain_knn() -> KNNClassifier:
    """Empty classifier that only lower-cases words, for exact arithmetic."""
    return KNNClassifier(stemmer=lowercase_stemmer)


@pytest.fixture
def corpus() -> tuple[list[str], list[str]]:
    """Two-topic corpus of short texts and their labels."""
    texts = ANIMAL_DOCS + FINANCE_DOCS
    labels = ["animal"] * len(ANIMAL_DOCS) + ["finance"] * len(FINANCE_DOCS)
    return texts, labels


@pytest.fixture
def trained_knn(knn: KNNClassifier, corpus) -> KNNClassifier:
    texts, labels = corpus
    knn.train_many(zip(texts, labels))
    return knn


@pytest.fixture
def tsv_dataset(tmp_path: Path, corpus) -> Path:
    """The corpus written as a ``label<TAB>text`` file."""
    texts, labels = corpus
    path = tmp_path / "examples.tsv"
    lines = ["# label\ttext"]
    lines += [f"{label}\t{text}" for text, label in zip(texts, labels)]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path
