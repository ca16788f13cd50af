"""Accuracy metrics and stratified cross-validation for the k-NN classifier.

Predictions of ``None`` (no neighbour shared a term with the query) are
scored as wrong and tallied in the confusion matrix under
``NO_PREDICTION_LABEL``.
"""

from __future__ import annotations

import random
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Optional, Sequence

from .classifier import KNNClassifier
from .preprocessing import Stemmer

NO_PREDICTION_LABEL = "<none>"


@dataclass
class ClassificationMetrics:
    """Evaluation metrics for one set of predictions.

    Attributes:
        accuracy: Fraction of examples predicted correctly.
        coverage: Fraction of examples that received any prediction.
        per_class: Precision, recall and F1 per true label.
        macro_precision: Unweighted mean precision.
        macro_recall: Unweighted mean recall.
        macro_f1: Unweighted mean F1.
        weighted_f1: F1 averaged by support.
        confusion_matrix: ``{true: {predicted: count}}``.
        support: Examples per true label.
    """

    accuracy: float = 0.0
    coverage: float = 0.0
    per_class: dict[str, dict[str, float]] = field(default_factory=dict)
    macro_precision: float = 0.0
    macro_recall: float = 0.0
    macro_f1: float = 0.0
    weighted_f1: float = 0.0
    confusion_matrix: dict[str, dict[str, int]] = field(default_factory=dict)
    support: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "accuracy": round(self.accuracy, 4),
            "coverage": round(self.coverage, 4),
            "macro_precision": round(self.macro_precision, 4),
            "macro_recall": round(self.macro_recall, 4),
            "macro_f1": round(self.macro_f1, 4),
            "weighted_f1": round(self.weighted_f1, 4),
            "per_class": {
                label: {name: round(v, 4) for name, v in scores.items()}
                for label, scores in self.per_class.items()
            },
            "support": self.support,
            "confusion_matrix": self.confusion_matrix,
        }

    def summary(self) -> str:
        """Plain-text report."""
        lines = [
            f"Accuracy: {self.accuracy:.2%}  (coverage {self.coverage:.2%})",
            f"Macro F1: {self.macro_f1:.4f}",
            f"Weighted F1: {self.weighted_f1:.4f}",
            "",
            f"{'Label':<20} {'Precision':>10} {'Recall':>10} {'F1':>10} {'Support':>10}",
            "-" * 62,
        ]
        for label in sorted(self.per_class):
            s = self.per_class[label]
            lines.append(
                f"{label:<20} {s['precision']:>10.4f} {s['recall']:>10.4f} "
                f"{s['f1']:>10.4f} {self.support.get(label, 0):>10}"
            )
        return "\n".join(lines)


def _safe_div(num: float, den: float) -> float:
    return num / den if den else 0.0


def compute_metrics(
    y_true: Sequence[str],
    y_pred: Sequence[Optional[str]],
) -> ClassificationMetrics:
    """Score predicted labels against the truth.

    Args:
        y_true: Ground truth labels.
        y_pred: Predicted labels; ``None`` means no prediction.

    Returns:
        ClassificationMetrics for the pair of sequences.

    Raises:
        ValueError: If the sequences differ in length.
    """
    if len(y_true) != len(y_pred):
        raise ValueError(
            f"y_true ({len(y_true)}) and y_pred ({len(y_pred)}) must have same length"
        )

    predicted = [NO_PREDICTION_LABEL if p is None else p for p in y_pred]
    labels = sorted(set(y_true))
    columns = sorted(set(y_true) | set(predicted))

    matrix: dict[str, dict[str, int]] = {t: dict.fromkeys(columns, 0) for t in labels}
    for t, p in zip(y_true, predicted):
        matrix[t][p] += 1

    n = len(y_true)
    correct = sum(matrix[t][t] for t in labels)
    answered = sum(1 for p in y_pred if p is not None)
    support = Counter(y_true)
    predicted_totals = Counter(predicted)

    per_class: dict[str, dict[str, float]] = {}
    for label in labels:
        tp = matrix[label][label]
        precision = _safe_div(tp, predicted_totals[label])
        recall = _safe_div(tp, support[label])
        per_class[label] = {
            "precision": precision,
            "recall": recall,
            "f1": _safe_div(2 * precision * recall, precision + recall),
        }

    count = len(labels)
    return ClassificationMetrics(
        accuracy=_safe_div(correct, n),
        coverage=_safe_div(answered, n),
        per_class=per_class,
        macro_precision=_safe_div(sum(s["precision"] for s in per_class.values()), count),
        macro_recall=_safe_div(sum(s["recall"] for s in per_class.values()), count),
        macro_f1=_safe_div(sum(s["f1"] for s in per_class.values()), count),
        weighted_f1=_safe_div(
            sum(per_class[label]["f1"] * support[label] for label in labels), n
        ),
        confusion_matrix=matrix,
        support=dict(support),
    )


def stratified_k_fold(
    labels: Sequence[str],
    folds: int = 5,
    seed: int = 42,
) -> list[tuple[list[int], list[int]]]:
    """Split example indices into folds with similar label distributions.

    Args:
        labels: Label of each example.
        folds: Number of folds (at least 2).
        seed: Shuffle seed.

    Returns:
        ``(train_indices, test_indices)`` per fold, indices ascending.

    Raises:
        ValueError: If ``folds`` is less than 2.
    """
    if folds < 2:
        raise ValueError(f"folds must be at least 2, got {folds}")

    rng = random.Random(seed)
    by_label: dict[str, list[int]] = defaultdict(list)
    for idx, label in enumerate(labels):
        by_label[label].append(idx)

    assignment = [0] * len(labels)
    for label in sorted(by_label):
        indices = by_label[label]
        rng.shuffle(indices)
        for position, idx in enumerate(indices):
            assignment[idx] = position % folds

    return [
        (
            [i for i, f in enumerate(assignment) if f != fold],
            [i for i, f in enumerate(assignment) if f == fold],
        )
        for fold in range(folds)
    ]


def cross_validate(
    texts: Sequence[str],
    labels: Sequence[str],
    k: int = 3,
    folds: int = 5,
    seed: int = 42,
    stemmer: Stemmer | None = None,
    strict_training: bool = False,
) -> list[ClassificationMetrics]:
    """Run stratified k-fold cross-validation with a fresh classifier per fold.

    Args:
        texts: Example texts.
        labels: Label of each text.
        k: Neighbours that vote on each prediction.
        folds: Number of folds.
        seed: Fold shuffle seed.
        stemmer: Stemmer for every fold's classifier.
        strict_training: Passed to each ``KNNClassifier``.

    Returns:
        One ClassificationMetrics per fold.

    Raises:
        ValueError: If ``texts`` and ``labels`` differ in length.
    """
    if len(texts) != len(labels):
        raise ValueError(
            f"texts ({len(texts)}) and labels ({len(labels)}) must have same length"
        )

    results: list[ClassificationMetrics] = []
    for train_idx, test_idx in stratified_k_fold(labels, folds=folds, seed=seed):
        knn = KNNClassifier(stemmer=stemmer, strict_training=strict_training)
        knn.train_many((texts[i], labels[i]) for i in train_idx)
        predictions = knn.predict_many((texts[i] for i in test_idx), k)
        results.append(compute_metrics([labels[i] for i in test_idx], predictions))
    return results


def mean_accuracy(results: Sequence[ClassificationMetrics]) -> float:
    return _safe_div(sum(r.accuracy for r in results), len(results))
