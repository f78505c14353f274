"""Media classifier: guess whether a file is a movie, a TV episode or unknown.

Classification is an ordered list of heuristic rules; the first rule whose
predicate matches decides the kind. Directory hints come first because media
libraries are usually organized by top-level folders (TV/, Film/, ...), then
episode markers in the file name, then the "(year)" movie convention.

Directory hints match whole words, so plural folders such as "Movies/" or
"Films/" give no hint: "/Movies/Inception.mkv" is unknown and
"/Movies/Show (2021) 1x02.mkv" falls through to the NxM rule and is tv.

The order matters: the year rules are the most permissive and would claim
episode files such as "Show (2020) 1x03.mkv" if evaluated earlier.
"""

import os
import re
from dataclasses import dataclass
from typing import Callable, List, Tuple

from mediaprint.models.core import MediaKind

# Whole words only: "Movies" or "Filmography" are not hints, "TV" and "Season 2" are.
TV_DIRECTORY_PATTERN = re.compile(r"\b(?:tv|series|season|episode)\b", re.IGNORECASE)
MOVIE_DIRECTORY_PATTERN = re.compile(r"\b(?:movie|film)\b", re.IGNORECASE)

EPISODE_NAME_PATTERNS = [
    re.compile(r"s\d+e\d+", re.IGNORECASE),  # S01E02
    re.compile(r"season\s*\d+", re.IGNORECASE),  # Season 1
    re.compile(r"episode\s*\d+", re.IGNORECASE),  # Episode 3
]

YEAR_PATTERN = re.compile(r"\(\d{4}\)")
NXM_PATTERN = re.compile(r"\d+x\d+", re.IGNORECASE)  # 1x03


@dataclass(frozen=True)
class ClassifierRule:
    """A named predicate over (directory path, file name) yielding a kind."""

    name: str
    kind: MediaKind
    predicate: Callable[[str, str], bool]

    def matches(self, path: str, name: str) -> bool:
        return self.predicate(path, name)


def _tv_directory(path: str, name: str) -> bool:
    return bool(TV_DIRECTORY_PATTERN.search(path))


def _movie_directory(path: str, name: str) -> bool:
    return bool(MOVIE_DIRECTORY_PATTERN.search(path))


def _episode_marker(path: str, name: str) -> bool:
    return any(pattern.search(name) for pattern in EPISODE_NAME_PATTERNS)


def _year_with_nxm(path: str, name: str) -> bool:
    year = YEAR_PATTERN.search(name)
    return bool(year and NXM_PATTERN.search(name))


def _year_without_nxm(path: str, name: str) -> bool:
    return bool(YEAR_PATTERN.search(name)) and not NXM_PATTERN.search(name)


CLASSIFIER_RULES: List[ClassifierRule] = [
    ClassifierRule("tv_directory", MediaKind.TV, _tv_directory),
    ClassifierRule("movie_directory", MediaKind.MOVIE, _movie_directory),
    ClassifierRule("episode_marker", MediaKind.TV, _episode_marker),
    ClassifierRule("year_with_nxm", MediaKind.TV, _year_with_nxm),
    ClassifierRule("year_without_nxm", MediaKind.MOVIE, _year_without_nxm),
]


def classify(path: str, name: str) -> MediaKind:
    """Classify a file from its containing directory and its file name.

    Args:
        path: Directory containing the file (may be empty).
        name: File name, with extension.

    Returns:
        The kind decided by the first matching rule, or MediaKind.UNKNOWN.
    """
    for rule in CLASSIFIER_RULES:
        if rule.matches(path, name):
            return rule.kind
    return MediaKind.UNKNOWN


def split_path(file_path: str) -> Tuple[str, str]:
    """Split a file path into (directory, name), accepting / and \\ separators."""
    normalized = file_path.replace("\\", "/")
    directory, _, name = normalized.rpartition("/")
    return directory, name


def classify_file(file_path: str) -> MediaKind:
    """Classify a file from its full path."""
    directory, name = split_path(os.fspath(file_path))
    return classify(directory, name)
