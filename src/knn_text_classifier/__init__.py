"""k-NN Text Classifier -- nearest-neighbour voting over a cosine vector space."""

__version__ = "0.1.0"

from .classifier import KNNClassifier
from .config import Settings
from .datasets import LabeledExample, get_reader, load_examples
from .evaluation import (
    NO_PREDICTION_LABEL,
    ClassificationMetrics,
    compute_metrics,
    cross_validate,
    stratified_k_fold,
)
from .models import UNCLASSIFIED, UNKNOWN_TERM, Document, Neighbour, Prediction
from .preprocessing import STEMMER_NAMES, Stemmer, TextPreprocessor, get_stemmer, split_words
from .stores import ClassRegistry, CorpusStore, PostingsIndex, RWLock, Vocabulary
from .vectorizer import DocumentVectorizer

__all__ = [
    # Core
    "KNNClassifier",
    "Document",
    "Neighbour",
    "Prediction",
    "UNCLASSIFIED",
    "UNKNOWN_TERM",
    # Stores
    "Vocabulary",
    "ClassRegistry",
    "CorpusStore",
    "PostingsIndex",
    "RWLock",
    # Text processing
    "DocumentVectorizer",
    "TextPreprocessor",
    "Stemmer",
    "STEMMER_NAMES",
    "get_stemmer",
    "split_words",
    # Datasets and configuration
    "LabeledExample",
    "load_examples",
    "get_reader",
    "Settings",
    # Evaluation
    "ClassificationMetrics",
    "NO_PREDICTION_LABEL",
    "compute_metrics",
    "cross_validate",
    "stratified_k_fold",
]
