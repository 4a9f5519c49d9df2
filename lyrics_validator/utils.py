"""Helper functions and configuration for the lyrics validator."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"
DATA_DIR = PROJECT_ROOT / "data"

DEFAULT_GENRES_PATH = CONFIG_DIR / "genres.yaml"
DEFAULT_FEEDBACK_PATH = DATA_DIR / "lyrics_feedback.json"

_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


@dataclass
class GenreConfig:
    """Expected cadence for a genre: syllables per line and allowed time signatures."""

    syllable_range: tuple[int, int]
    time_signatures: set[str] = field(default_factory=set)


def configure_logging(level: str | int | None = None) -> None:
    """Set up root logging, honouring LYRICS_LOG_LEVEL when no level is given."""
    if level is None:
        level = os.getenv("LYRICS_LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = getattr(logging, level.strip().upper(), logging.INFO)
    logging.basicConfig(level=level, format=_LOG_FORMAT)
    logging.getLogger("lyrics_validator").setLevel(level)


def get_genres_path() -> Path:
    return Path(os.getenv("LYRICS_GENRES_PATH") or DEFAULT_GENRES_PATH)


def get_feedback_path() -> Path:
    return Path(os.getenv("LYRICS_FEEDBACK_PATH") or DEFAULT_FEEDBACK_PATH)


def get_history_limit() -> int | None:
    """Max number of history records to retain; None keeps everything."""
    value = os.getenv("LYRICS_HISTORY_LIMIT")
    if not value:
        return None
    try:
        limit = int(value)
    except ValueError:
        logger.warning("Ignoring invalid LYRICS_HISTORY_LIMIT=%r", value)
        return None
    return limit if limit > 0 else None


def _parse_genre(name: str, raw) -> GenreConfig | None:
    if not isinstance(raw, dict):
        return None
    syllable_range = raw.get("syllable_range") or raw.get("syllableRange")
    signatures = raw.get("time_signatures") or raw.get("timeSignatures") or []
    try:
        low, high = (int(v) for v in syllable_range)
    except (TypeError, ValueError):
        logger.warning("Genre '%s' has an invalid syllable range: %r", name, syllable_range)
        return None
    if low > high:
        low, high = high, low
    if isinstance(signatures, str):
        signatures = [signatures]
    elif not isinstance(signatures, (list, tuple, set)):
        logger.warning("Genre '%s' has invalid time signatures: %r", name, signatures)
        return None
    return GenreConfig(
        syllable_range=(low, high),
        time_signatures={str(sig).strip() for sig in signatures},
    )


def load_all_genres(path: Path | None = None) -> dict[str, GenreConfig]:
    """Load all genre configurations from genres.yaml.

    A missing or unreadable file yields an empty mapping, which disables the
    genre-specific cadence checks instead of failing the analysis.
    """
    config_path = Path(path) if path else get_genres_path()
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Genre config not found at %s", config_path)
        return {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Could not read genre config %s: %s", config_path, e)
        return {}

    genres = config.get("genres", {}) if isinstance(config, dict) else {}
    if not isinstance(genres, dict):
        return {}

    result = {}
    for name, raw in genres.items():
        parsed = _parse_genre(str(name), raw)
        if parsed is not None:
            result[str(name).strip().lower()] = parsed
    return result


def load_genre_config(genre_name: str | None, path: Path | None = None) -> GenreConfig | None:
    """Look up a single genre (case-insensitive). Returns None when unknown."""
    if not genre_name:
        return None
    return load_all_genres(path).get(genre_name.strip().lower())
