"""Readers for labeled example files.

Supports tab-separated (``.tsv``/``.txt``), CSV and JSON Lines files. Each
reader yields ``LabeledExample`` records in file order; the format is
picked from the file extension by ``get_reader``.
"""

from __future__ import annotations

import csv
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LabeledExample:
    """One training example."""

    text: str
    label: str


class DatasetReader(ABC):
    """Base class for labeled example readers."""

    supported_extensions: tuple[str, ...] = ()

    def can_handle(self, path: Path) -> bool:
        """Check if this reader understands the given file."""
        return path.suffix.lower() in self.supported_extensions

    def read(self, path: Path) -> list[LabeledExample]:
        """Read every example from ``path``.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If a record is malformed.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Dataset not found: {path}")
        examples = list(self._iter_examples(path))
        logger.info("Read %d example(s) from %s", len(examples), path)
        return examples

    @abstractmethod
    def _iter_examples(self, path: Path) -> Iterator[LabeledExample]:
        ...


class TSVReader(DatasetReader):
    """``label<TAB>text`` per line. Blank lines and ``#`` comments are skipped."""

    supported_extensions = (".tsv", ".txt")

    def _iter_examples(self, path: Path) -> Iterator[LabeledExample]:
        with open(path, "r", encoding="utf-8") as f:
            for lineno, line in enumerate(f, 1):
                line = line.rstrip("\r\n")
                if not line.strip() or line.lstrip().startswith("#"):
                    continue
                label, sep, text = line.partition("\t")
                if not sep or not label.strip():
                    raise ValueError(
                        f"{path.name}:{lineno}: expected 'label<TAB>text'"
                    )
                yield LabeledExample(text=text, label=label.strip())


class CSVReader(DatasetReader):
    """CSV with a header row containing ``label`` and ``text`` columns."""

    supported_extensions = (".csv",)

    def _iter_examples(self, path: Path) -> Iterator[LabeledExample]:
        with open(path, "r", encoding="utf-8", newline="") as f:
            reader = csv.DictReader(f)
            missing = {"label", "text"} - set(reader.fieldnames or ())
            if missing:
                raise ValueError(
                    f"{path.name}: missing column(s): {', '.join(sorted(missing))}"
                )
            for row in reader:
                label = (row.get("label") or "").strip()
                if not label:
                    raise ValueError(f"{path.name}:{reader.line_num}: empty label")
                yield LabeledExample(text=row.get("text") or "", label=label)


class JSONLinesReader(DatasetReader):
    """One JSON object per line with ``label`` and ``text`` keys."""

    supported_extensions = (".jsonl", ".ndjson")

    def _iter_examples(self, path: Path) -> Iterator[LabeledExample]:
        with open(path, "r", encoding="utf-8") as f:
            for lineno, line in enumerate(f, 1):
                if not line.strip():
                    continue
                try:
                    record = json.loads(line)
                except json.JSONDecodeError as e:
                    raise ValueError(f"{path.name}:{lineno}: invalid JSON ({e.msg})") from e
                if not isinstance(record, dict) or "label" not in record:
                    raise ValueError(f"{path.name}:{lineno}: expected an object with 'label'")
                label = record["label"]
                label = "" if label is None else str(label).strip()
                if not label:
                    raise ValueError(f"{path.name}:{lineno}: empty label")
                text = record.get("text")
                yield LabeledExample(text="" if text is None else str(text), label=label)


def get_reader(path: Path) -> DatasetReader:
    """Get the reader for a file based on its extension.

    Raises:
        ValueError: If no reader supports the extension.
    """
    readers: list[DatasetReader] = [TSVReader(), CSVReader(), JSONLinesReader()]
    for reader in readers:
        if reader.can_handle(Path(path)):
            return reader

    supported = sorted({ext for r in readers for ext in r.supported_extensions})
    raise ValueError(
        f"No dataset reader available for '{Path(path).suffix}'. "
        f"Supported formats: {', '.join(supported)}"
    )


def load_examples(path: str | Path) -> list[LabeledExample]:
    """Read labeled examples from a file of any supported format."""
    path = Path(path)
    return get_reader(path).read(path)
