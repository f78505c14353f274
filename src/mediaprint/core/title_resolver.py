"""Title resolver: map a raw title (and optional year) to provider metadata.

Resolution order is deterministic:
1. The raw title is searched first; if it yields anything, looser candidates
   are never tried.
2. Short titles get heuristic completions ("Frozen" -> "Frozen The Movie").
3. For TV, plausible series names are read from the file's directories.

Within the searched candidates the first kind-compatible result is kept as a
provisional match, an exact year match overrides it, and when nothing is
compatible the first raw result of any candidate is returned.
"""

import logging
import re
from typing import Dict, List, Optional, Tuple, Union

from mediaprint.core.fuzzy_matcher import calculate_title_confidence, normalize_title
from mediaprint.errors import ResolutionError
from mediaprint.metadata.base import MetadataClient
from mediaprint.metadata.models import MediaMetadata
from mediaprint.models.core import MediaKind, ResolutionMethod

logger = logging.getLogger(__name__)

# Values some callers use for "year not known".
UNKNOWN_YEAR_SENTINELS = {"", "0", "unknown", "n/a", "未知"}

STOPWORDS = {"the", "a", "an", "of", "and", "in", "on", "at", "to", "for", "with"}

HEURISTIC_SUFFIXES: Dict[MediaKind, List[str]] = {
    MediaKind.MOVIE: ["The Movie", "Part 2"],
    MediaKind.TV: ["The Series"],
    MediaKind.UNKNOWN: ["The Movie"],
}

GENERIC_FOLDER_NAMES = {
    "tv",
    "tv shows",
    "tv series",
    "shows",
    "series",
    "movies",
    "films",
    "media",
    "video",
    "videos",
    "downloads",
    "complete",
    "anime",
    "extras",
    "specials",
    "featurettes",
}

SEASON_EPISODE_MARKER = re.compile(
    r"\b(?:s\d{1,2}(?:e\d{1,3})?|season\s*\d+|episode\s*\d+|ep\s*\d+|\d{1,2}x\d{1,3})\b",
    re.IGNORECASE,
)
BRACKETED = re.compile(r"\[[^\]]*\]|\([^)]*\)")
PATH_SEPARATORS = re.compile(r"[\\/]+")
NAME_SEPARATORS = re.compile(r"[._\-]+")

SERIES_NAME_MIN_LENGTH = 7
SERIES_NAME_MAX_LENGTH = 49

EXACT_YEAR_CONFIDENCE = 0.95
EXACT_CONFIDENCE = 0.85
FUZZY_BASE_CONFIDENCE = 0.5
FUZZY_SIMILARITY_WEIGHT = 0.3
FUZZY_YEAR_BONUS = 0.05
MIN_CONFIDENCE = 0.5
MAX_CONFIDENCE = 1.0

YearLike = Union[int, str, None]


def normalize_year(year: YearLike) -> Optional[int]:
    """Return the year as an int, or None for missing or sentinel values."""
    if year is None or isinstance(year, bool):
        return None
    if isinstance(year, int):
        return year if year > 0 else None
    text = str(year).strip()
    if text.lower() in UNKNOWN_YEAR_SENTINELS or not text.isdigit():
        return None
    return int(text)


def is_kind_compatible(requested: MediaKind, found: MediaKind) -> bool:
    """Whether a result of kind ``found`` can satisfy a ``requested`` search."""
    return MediaKind.UNKNOWN in (requested, found) or requested == found


def heuristic_completions(raw_title: str, kind: MediaKind) -> List[str]:
    """Guess longer titles for short raw titles; empty for long ones."""
    words = raw_title.split()
    if not words or len(words) >= 3 or words[-1].lower() in STOPWORDS:
        return []
    return [f"{raw_title} {suffix}" for suffix in HEURISTIC_SUFFIXES[kind]]


def series_names_from_path(source_path: str) -> List[str]:
    """Plausible series names from the directories of a file path, nearest first."""
    parts = [part for part in PATH_SEPARATORS.split(source_path) if part]
    names: List[str] = []
    for component in reversed(parts[:-1]):
        name = BRACKETED.sub(" ", component)
        name = NAME_SEPARATORS.sub(" ", name)
        name = SEASON_EPISODE_MARKER.sub(" ", name)
        name = " ".join(name.split())
        if not name or name.lower() in GENERIC_FOLDER_NAMES:
            continue
        if SERIES_NAME_MIN_LENGTH <= len(name) <= SERIES_NAME_MAX_LENGTH:
            names.append(name)
    return names


def build_candidates(
    raw_title: str, kind: MediaKind, source_path: Optional[str] = None
) -> List[str]:
    """Ordered, de-duplicated list of titles to search for."""
    candidates = [raw_title]
    candidates.extend(heuristic_completions(raw_title, kind))
    if kind == MediaKind.TV and source_path:
        candidates.extend(series_names_from_path(source_path))

    seen = set()
    unique: List[str] = []
    for candidate in candidates:
        candidate = candidate.strip()
        key = candidate.casefold()
        if not candidate or key in seen:
            continue
        seen.add(key)
        unique.append(candidate)
    return unique


def score_match(
    raw_title: str, year: YearLike, match: MediaMetadata
) -> Tuple[ResolutionMethod, float]:
    """Rate how well a resolved match fits the raw title and year.

    Returns:
        (method, confidence) with confidence clamped to [0.5, 1.0].
    """
    wanted_year = normalize_year(year)
    year_matched = wanted_year is not None and match.year == wanted_year
    titles = [match.title] + ([match.original_title] if match.original_title else [])
    wanted = normalize_title(raw_title)

    if wanted and any(normalize_title(title) == wanted for title in titles):
        method = ResolutionMethod.TITLE_EXACT
        confidence = EXACT_YEAR_CONFIDENCE if year_matched else EXACT_CONFIDENCE
    else:
        method = ResolutionMethod.TITLE_FUZZY
        similarity = max(calculate_title_confidence(raw_title, title) for title in titles)
        confidence = FUZZY_BASE_CONFIDENCE + FUZZY_SIMILARITY_WEIGHT * similarity
        if year_matched:
            confidence += FUZZY_YEAR_BONUS
    return method, max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, confidence))


class TitleResolver:
    """Resolves raw titles through a metadata search client."""

    def __init__(self, client: MetadataClient) -> None:
        self.client = client

    async def resolve(
        self,
        raw_title: str,
        year: YearLike = None,
        kind: MediaKind = MediaKind.UNKNOWN,
        source_path: Optional[str] = None,
    ) -> Optional[MediaMetadata]:
        """Find the best metadata match for a raw title.

        Args:
            raw_title: Title parsed from the file name.
            year: Release year, or None / a sentinel when unknown.
            kind: Classifier verdict, used to pick the search endpoint.
            source_path: Path of the file, used to derive TV series names.

        Returns:
            The selected match, or None when no candidate returned anything.

        Raises:
            ResolutionError: If every candidate search failed.
        """
        wanted_year = normalize_year(year)
        candidates = build_candidates(raw_title, kind, source_path)

        raw_results: List[MediaMetadata] = []
        match: Optional[MediaMetadata] = None
        year_confirmed = False
        failures = 0

        for candidate in candidates:
            try:
                results = await self.client.search(candidate, kind)
            except ResolutionError as exc:
                failures += 1
                logger.warning("Search for candidate %r failed: %s", candidate, exc)
                continue
            raw_results.extend(results)

            eligible = [r for r in results if is_kind_compatible(kind, r.kind)]
            if eligible and match is None:
                match = eligible[0]
            if wanted_year is not None and not year_confirmed:
                for result in eligible:
                    if result.year == wanted_year:
                        match = result
                        year_confirmed = True
                        break

            if candidate == raw_title.strip() and results:
                break

        if candidates and failures == len(candidates):
            raise ResolutionError(raw_title, "every search attempt failed")

        if match is None and raw_results:
            match = raw_results[0]
        if match is not None:
            logger.debug(
                "Resolved %r (%s) to %r (%s)", raw_title, kind.value, match.title, match.year
            )
        return match

    def score(
        self, raw_title: str, year: YearLike, match: MediaMetadata
    ) -> Tuple[ResolutionMethod, float]:
        """Rate a match returned by resolve(); see score_match."""
        return score_match(raw_title, year, match)
