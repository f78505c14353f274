"""Filename parser extracting a searchable title from release-style names.

Turns names like ``The.Matrix.1999.1080p.BluRay.x264-GROUP.mkv`` into a title
("The Matrix") plus whatever structured hints the name carries: year,
season/episode, resolution and source tags.
"""

import re
from dataclasses import dataclass
from typing import Optional

EXTENSION_PATTERN = re.compile(r"\.[^/.]+$")
SEASON_EPISODE_PATTERN = re.compile(
    r"[Ss](\d{1,2})[Ee](\d{1,2})|第(\d{1,2})季.*?第(\d{1,2})集"
)
YEAR_PATTERN = re.compile(r"[.\[(（]?(?<!\d)(19\d{2}|20\d{2})(?!\d)[)）\].]?")
PAREN_YEAR_PATTERN = re.compile(r"[(（](19\d{2}|20\d{2})[)）]")
RESOLUTION_PATTERN = re.compile(
    r"[.\[(（]?\b(1080[pi]|720[pi]|2160[pi]|4K|UHD|HD)\b[)）\].]?", re.IGNORECASE
)
SOURCE_PATTERN = re.compile(
    r"[.\[(（]?\b(BluRay|Blu-Ray|WEB-DL|HDTV|DVDRip|BDRip|HDRip|WEBRip)\b[)）\].]?",
    re.IGNORECASE,
)

CODEC_PATTERN = re.compile(r"\b(?:[xh]\.?26[45]|HEVC|AVC|10bit|AAC|AC3|DTS)\b", re.IGNORECASE)

SEPARATOR_PATTERN = re.compile(r"[._]")
BRACKETED_PATTERN = re.compile(r"\[[^\]]*\]|【[^】]*】|\([^)]*\)|（[^）]*）")
QUOTE_PATTERN = re.compile(r"[「」『』]")
GROUP_SUFFIX_PATTERN = re.compile(r"\s-\s*[^-]*$")
WHITESPACE_PATTERN = re.compile(r"\s+")


@dataclass(frozen=True)
class ParsedName:
    """Structured hints read from a file name."""

    title: str
    year: Optional[int] = None
    season: Optional[int] = None
    episode: Optional[int] = None
    resolution: Optional[str] = None
    source: Optional[str] = None


def parse_filename(name: str) -> ParsedName:
    """Parse a media file name into a title and release hints.

    Args:
        name: File name, with or without extension.

    Returns:
        ParsedName; the title may be empty when the name holds nothing but tags.
    """
    stem = EXTENSION_PATTERN.sub("", name)
    title = stem

    season = episode = None
    season_episode = SEASON_EPISODE_PATTERN.search(stem)
    if season_episode:
        season = int(season_episode.group(1) or season_episode.group(3))
        episode = int(season_episode.group(2) or season_episode.group(4))
        title = title.replace(season_episode.group(0), " ", 1)

    year = None
    year_match = PAREN_YEAR_PATTERN.search(title) or YEAR_PATTERN.search(title)
    if year_match:
        year = int(year_match.group(1))
        title = title[: year_match.start()] + " " + title[year_match.end() :]

    resolution = None
    resolution_match = RESOLUTION_PATTERN.search(title)
    if resolution_match:
        resolution = resolution_match.group(1)
        title = title[: resolution_match.start()] + " " + title[resolution_match.end() :]

    source = None
    source_match = SOURCE_PATTERN.search(title)
    if source_match:
        source = source_match.group(1)
        title = title[: source_match.start()] + " " + title[source_match.end() :]

    title = CODEC_PATTERN.sub(" ", title)
    title = SEPARATOR_PATTERN.sub(" ", title)
    title = BRACKETED_PATTERN.sub(" ", title)
    title = QUOTE_PATTERN.sub(" ", title)
    title = GROUP_SUFFIX_PATTERN.sub(" ", title)
    title = WHITESPACE_PATTERN.sub(" ", title).strip()
    title = title.strip("-").strip()

    return ParsedName(
        title=title,
        year=year,
        season=season,
        episode=episode,
        resolution=resolution,
        source=source,
    )
