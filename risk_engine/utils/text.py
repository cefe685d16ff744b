"""
Text processing utilities for the risk engine.

Provides the normalized edit-distance similarity used by the fraud score
matrix and the text normalization used by transaction search.
"""

import unicodedata

import jellyfish


def normalize_text(text: str) -> str:
    """
    Normalize text for case- and accent-insensitive matching.

    Performs the following transformations:
    - Converts to lowercase
    - Normalizes Unicode characters (NFKD normalization)
    - Removes diacritics/combining characters
    - Collapses multiple whitespaces

    Punctuation is kept so that substrings such as "amazon.com" still match.

    Args:
        text: Input string to normalize.

    Returns:
        Normalized string, or empty string if input is None or not a string.

    Example:
        >>> normalize_text("  Café   Müller ")
        'cafe muller'
    """
    if not isinstance(text, str):
        return ""

    text = text.lower()
    text = unicodedata.normalize('NFKD', text)
    text = ''.join(c for c in text if not unicodedata.combining(c))
    text = ' '.join(text.split())

    return text


def levenshtein_distance(s1: str, s2: str) -> int:
    """Number of single-character insertions, deletions or substitutions between two strings."""
    return jellyfish.levenshtein_distance(s1, s2)


def string_similarity(s1: str, s2: str) -> float:
    """
    Normalized Levenshtein similarity (0-1 range).

    Computed as ``1 - distance / max(len(s1), len(s2))``. Identical strings,
    including two empty strings, have similarity 1.0.

    Args:
        s1: First string to compare.
        s2: Second string to compare.

    Returns:
        Similarity from 0.0 (completely different) to 1.0 (identical).

    Example:
        >>> string_similarity("kitten", "sitten")
        0.833...  # 1 edit / 6 max length
    """
    if s1 == s2:
        return 1.0

    max_len = max(len(s1), len(s2))
    return 1.0 - levenshtein_distance(s1, s2) / max_len
