"""Command-line interface for the k-NN text classifier.

Every command trains an in-memory classifier from a labeled dataset file
(see ``datasets``) and then works against it; nothing is saved between
runs. Output uses ``click`` and ``rich``.

Usage::

    knn-classify predict examples.tsv "cats and dogs" -k 3
    knn-classify evaluate examples.jsonl --folds 5 -k 3
    knn-classify inspect examples.csv
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import NoReturn

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .classifier import KNNClassifier
from .config import Settings
from .datasets import LabeledExample, load_examples
from .evaluation import ClassificationMetrics, cross_validate, mean_accuracy
from .models import Neighbour, Prediction
from .preprocessing import STEMMER_NAMES, get_stemmer

console = Console()
logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _fail(message: object) -> NoReturn:
    console.print(f"[bold red]Error:[/] {message}")
    sys.exit(1)


def _load(path: Path) -> list[LabeledExample]:
    try:
        return load_examples(path)
    except (ValueError, FileNotFoundError) as e:
        _fail(e)


def _train(settings: Settings, examples: list[LabeledExample]) -> KNNClassifier:
    knn = settings.build_classifier()
    with console.status("[bold blue]Training classifier...", spinner="dots"):
        knn.train_many((ex.text, ex.label) for ex in examples)
    logger.info("Trained %d document(s), vocabulary=%d", knn.document_count, knn.vocabulary_size)
    return knn


@click.group()
@click.version_option(version=__version__, package_name="knn-text-classifier")
@click.option("--stemmer", type=click.Choice(STEMMER_NAMES, case_sensitive=False),
              default=None, help="Stemmer (default: $KNN_STEMMER or porter).")
@click.option("--strict/--no-strict", default=None,
              help="Make each training call atomic for concurrent readers.")
@click.option("--log-level", default=None,
              help="Logging level (default: $KNN_LOG_LEVEL or WARNING).")
@click.pass_context
def main(ctx: click.Context, stemmer: str | None, strict: bool | None,
         log_level: str | None) -> None:
    """k-nearest-neighbours text classification over a cosine vector space."""
    try:
        settings = Settings.from_env()
        if stemmer is not None:
            settings.stemmer = stemmer.lower()
        if strict is not None:
            settings.strict_training = strict
        if log_level is not None:
            settings.log_level = log_level
        # Re-run field validation after overrides.
        settings = Settings(**vars(settings))
    except ValueError as e:
        _fail(e)

    _configure_logging(settings.log_level)
    ctx.obj = settings


@main.command()
@click.argument("dataset", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("texts", nargs=-1, required=True)
@click.option("-k", "k", type=int, default=None, help="Neighbours that vote (default: $KNN_K or 3).")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
@click.option("--show-neighbours", "-n", type=int, default=0,
              help="Also list the N nearest neighbours of each text (independent of -k).")
@click.pass_obj
def predict(settings: Settings, dataset: Path, texts: tuple[str, ...], k: int | None,
            output: str, show_neighbours: int) -> None:
    """Train on DATASET and predict the label of each TEXT.

    Example: knn-classify predict examples.tsv "cats and dogs" -k 3
    """
    k = settings.k if k is None else k
    knn = _train(settings, _load(dataset))
    predictions = [knn.classify(text, k) for text in texts]

    if output == "json":
        click.echo(json.dumps(
            [{"text": text, **p.to_dict()} for text, p in zip(texts, predictions)],
            indent=2,
        ))
        return

    listings = []
    if show_neighbours > 0:
        listings = [knn.neighbours(text, show_neighbours) for text in texts]
    _render_predictions(texts, predictions, listings)


@main.command()
@click.argument("dataset", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-k", "k", type=int, default=None, help="Neighbours that vote (default: $KNN_K or 3).")
@click.option("--folds", "-f", type=int, default=5, help="Number of cross-validation folds.")
@click.option("--seed", type=int, default=42, help="Fold shuffle seed.")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
@click.pass_obj
def evaluate(settings: Settings, dataset: Path, k: int | None, folds: int, seed: int,
             output: str) -> None:
    """Cross-validate the classifier on DATASET.

    Example: knn-classify evaluate examples.jsonl --folds 5 -k 3
    """
    k = settings.k if k is None else k
    examples = _load(dataset)

    with console.status("[bold blue]Cross-validating...", spinner="dots"):
        try:
            results = cross_validate(
                [ex.text for ex in examples],
                [ex.label for ex in examples],
                k=k,
                folds=folds,
                seed=seed,
                stemmer=get_stemmer(settings.stemmer),
                strict_training=settings.strict_training,
            )
        except ValueError as e:
            _fail(e)

    if output == "json":
        click.echo(json.dumps({
            "k": k,
            "folds": [r.to_dict() for r in results],
            "mean_accuracy": round(mean_accuracy(results), 4),
        }, indent=2))
        return

    _render_evaluation(results, k)


@main.command()
@click.argument("dataset", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
@click.pass_obj
def inspect(settings: Settings, dataset: Path, output: str) -> None:
    """Train on DATASET and show the size of the resulting index."""
    knn = _train(settings, _load(dataset))
    stats = knn.stats()

    if output == "json":
        click.echo(json.dumps(stats, indent=2))
        return

    console.print(Panel(
        f"Documents: {stats['documents']} | "
        f"Vocabulary: {stats['vocabulary']} | "
        f"Indexed terms: {stats['indexed_terms']} | "
        f"Stemmer: {settings.stemmer}",
        title=f"{dataset.name}",
        border_style="blue",
    ))
    table = Table(title="Documents per label")
    table.add_column("Label", style="cyan")
    table.add_column("Documents", justify="right")
    for label, count in stats["classes"].items():
        table.add_row(label, str(count))
    console.print(table)


# ------------------------------------------------------------------
# Rich rendering helpers
# ------------------------------------------------------------------

def _render_predictions(texts: tuple[str, ...], predictions: list[Prediction],
                        listings: list[list[Neighbour]]) -> None:
    table = Table(title="Predictions", show_lines=True)
    table.add_column("#", justify="right", width=4)
    table.add_column("Text", style="white", max_width=60)
    table.add_column("Label", style="cyan")
    table.add_column("Votes", justify="center")
    table.add_column("Top sim.", justify="right")

    for i, (text, p) in enumerate(zip(texts, predictions), 1):
        excerpt = text[:80].replace("\n", " ") + ("..." if len(text) > 80 else "")
        label = p.label if p.has_prediction else "[dim]no prediction[/]"
        votes = f"{p.votes.get(p.label, 0)}/{len(p.neighbours)}" if p.has_prediction else "-"
        table.add_row(str(i), excerpt, label, votes, f"{p.top_similarity:.3f}")

    console.print(table)

    for i, neighbours in enumerate(listings, 1):
        if neighbours:
            nt = Table(title=f"Neighbours of #{i}")
            nt.add_column("Doc", justify="right")
            nt.add_column("Label", style="cyan")
            nt.add_column("Similarity", justify="right")
            for n in neighbours:
                nt.add_row(str(n.doc_id), n.label or "?", f"{n.similarity:.4f}")
            console.print(nt)


def _render_evaluation(results: list[ClassificationMetrics], k: int) -> None:
    table = Table(title=f"Cross-validation (k={k})")
    table.add_column("Fold", justify="right")
    table.add_column("Accuracy", justify="right")
    table.add_column("Coverage", justify="right")
    table.add_column("Macro F1", justify="right")
    table.add_column("Weighted F1", justify="right")

    for i, r in enumerate(results, 1):
        table.add_row(
            str(i),
            f"{r.accuracy:.2%}",
            f"{r.coverage:.2%}",
            f"{r.macro_f1:.4f}",
            f"{r.weighted_f1:.4f}",
        )

    console.print(table)
    console.print(f"Mean accuracy: [bold]{mean_accuracy(results):.2%}[/]")


if __name__ == "__main__":
    main()
