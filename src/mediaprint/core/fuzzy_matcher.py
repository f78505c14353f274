"""Fuzzy title similarity for resolver scoring.

Uses rapidfuzz token metrics, damped for subset matches so that a one-word
query does not look like a near-perfect match for a long canonical title.
"""

import re
from typing import Set

from rapidfuzz import fuzz

LEADING_ARTICLE = re.compile(r"^(?:the|a|an)\s+")
PUNCTUATION = re.compile(r"[^\w\s]")
YEAR_TOKEN = re.compile(r"\s*\b(?:19|20)\d{2}\b\s*")
WORD = re.compile(r"\w+")


def normalize_title(title: str) -> str:
    """Lowercase, drop punctuation and collapse whitespace."""
    cleaned = PUNCTUATION.sub(" ", title.lower())
    return " ".join(cleaned.split())


def _words(value: str) -> Set[str]:
    return set(WORD.findall(value))


def calculate_title_confidence(input_title: str, canonical_title: str) -> float:
    """Similarity between a parsed title and a provider title.

    Args:
        input_title: Title extracted from a file name or path.
        canonical_title: Title returned by the metadata provider.

    Returns:
        Similarity in [0.0, 1.0]; 1.0 for titles equal after normalization.
    """
    if not input_title or not canonical_title:
        return 0.0

    left = normalize_title(input_title)
    right = normalize_title(canonical_title)
    if not left or not right:
        return 0.0
    if left == right:
        return 1.0

    # "Office" vs "The Office"
    if LEADING_ARTICLE.sub("", left) == LEADING_ARTICLE.sub("", right):
        return 0.95

    left_words = _words(left)
    right_words = _words(right)

    token_sort = fuzz.token_sort_ratio(left, right) / 100.0
    token_set = fuzz.token_set_ratio(left, right) / 100.0
    if len(left_words) < len(right_words):
        token_set *= len(left_words) / len(right_words) * 0.8
    score = max(token_sort, token_set)

    partial = fuzz.partial_ratio(left, right) / 100.0
    if len(left) >= len(right) * 0.6:
        score = max(score, partial)
    else:
        score = max(score, partial * len(left) / len(right))

    overlap = len(left_words & right_words) / len(right_words) if right_words else 0.0
    if overlap == 0.0:
        score *= 0.3
    elif len(left_words) > 1 and overlap > 0.5:
        score = max(score, overlap * 0.85)

    length_ratio = min(len(left), len(right)) / max(len(left), len(right))
    if score < 0.5 and length_ratio < 0.6:
        score *= 0.5

    # "Danger Mouse 2015" vs "Danger Mouse"
    if YEAR_TOKEN.sub(" ", left).strip() == YEAR_TOKEN.sub(" ", right).strip():
        score = max(score, 0.85)

    return max(0.0, min(1.0, score))
