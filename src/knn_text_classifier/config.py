"""Runtime settings read from the environment.

Values come from ``KNN_*`` environment variables; a ``.env`` file in the
working directory is loaded first via ``python-dotenv``. Command-line
options take precedence over anything set here.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import find_dotenv, load_dotenv

from .classifier import KNNClassifier
from .preprocessing import STEMMER_NAMES, get_stemmer

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean (true/false), got {value!r}")


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


@dataclass
class Settings:
    """Classifier and CLI defaults.

    Attributes:
        k: Neighbours that vote on a prediction.
        stemmer: Stemmer name, see ``preprocessing.STEMMER_NAMES``.
        strict_training: Make training atomic with respect to predictions.
        log_level: Logging level name for the command-line tool.
    """

    k: int = 3
    stemmer: str = "porter"
    strict_training: bool = False
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        if self.stemmer.lower() not in STEMMER_NAMES:
            raise ValueError(
                f"Unknown stemmer '{self.stemmer}'. "
                f"Supported stemmers: {', '.join(STEMMER_NAMES)}"
            )
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log level '{self.log_level}'")

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        dotenv: bool = True,
    ) -> "Settings":
        """Build settings from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``.
            dotenv: Load a ``.env`` file into ``os.environ`` first.

        Raises:
            ValueError: If a variable cannot be parsed.
        """
        if dotenv and environ is None:
            load_dotenv(find_dotenv(usecwd=True))
        env = os.environ if environ is None else environ

        defaults = cls()
        return cls(
            k=_parse_int("KNN_K", env["KNN_K"]) if "KNN_K" in env else defaults.k,
            stemmer=env.get("KNN_STEMMER", defaults.stemmer),
            strict_training=(
                _parse_bool("KNN_STRICT_TRAINING", env["KNN_STRICT_TRAINING"])
                if "KNN_STRICT_TRAINING" in env
                else defaults.strict_training
            ),
            log_level=env.get("KNN_LOG_LEVEL", defaults.log_level),
        )

    def build_classifier(self) -> KNNClassifier:
        """Create an empty classifier configured by these settings."""
        return KNNClassifier(
            stemmer=get_stemmer(self.stemmer),
            strict_training=self.strict_training,
        )
