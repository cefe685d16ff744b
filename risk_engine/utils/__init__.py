"""Utility modules for the risk engine."""

from .logging import default_logger, get_logger, EngineLogger
from .text import normalize_text, levenshtein_distance, string_similarity
from .stats import pearson_correlation

__all__ = [
    "get_logger",
    "default_logger",
    "EngineLogger",
    "normalize_text",
    "levenshtein_distance",
    "string_similarity",
    "pearson_correlation",
]
