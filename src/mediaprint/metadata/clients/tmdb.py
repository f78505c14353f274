"""TMDB metadata provider client.

Implements the MetadataClient interface for The Movie Database (TMDB) search
API. Movies go to /search/movie, TV to /search/tv and unknown kinds to
/search/multi (people are filtered out).
"""

import logging
from datetime import date
from typing import Any

import httpx
import pydantic

from mediaprint.errors import ResolutionError
from mediaprint.metadata.base import MetadataClient
from mediaprint.metadata.models import MediaMetadata
from mediaprint.metadata.settings import Settings
from mediaprint.models.core import MediaKind

logger = logging.getLogger(__name__)

BASE_URL = "https://api.themoviedb.org/3"
DEFAULT_TIMEOUT = 10.0
YEAR_LENGTH = 4  # Minimum length for a valid year string

SEARCH_PATHS = {
    MediaKind.MOVIE: "/search/movie",
    MediaKind.TV: "/search/tv",
    MediaKind.UNKNOWN: "/search/multi",
}


class TMDBClient(MetadataClient):
    """Client for The Movie Database (TMDB) search API.

    Loads the API key and language from Settings unless given explicitly.
    """

    def __init__(
        self,
        api_key: str | None = None,
        language: str | None = None,
        base_url: str = BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize TMDBClient, falling back to settings for credentials."""
        settings = Settings()
        if api_key is None:
            settings.require_keys()
        self.api_key = api_key or settings.TMDB_API_KEY
        self.language = language or settings.TMDB_LANGUAGE
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def search(
        self, title: str, kind: MediaKind = MediaKind.UNKNOWN
    ) -> list[MediaMetadata]:
        """Search TMDB for movies and/or TV series by title.

        Args:
            title: The title to search for.
            kind: Which endpoint to query.

        Returns:
            List of MediaMetadata in TMDB relevance order.

        Raises:
            ResolutionError: On transport errors, non-2xx responses or a payload
                without a results list. Individual malformed results are skipped.
        """
        url = f"{self.base_url}{SEARCH_PATHS[kind]}"
        params: dict[str, Any] = {"query": title, "api_key": self.api_key}
        if self.language:
            params["language"] = self.language
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(url, params=params)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPError as exc:
            raise ResolutionError(title, f"TMDB search failed: {exc}") from exc
        except ValueError as exc:
            raise ResolutionError(title, f"TMDB returned invalid JSON: {exc}") from exc

        items = (data.get("results") or []) if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise ResolutionError(title, "TMDB returned an unexpected payload")

        results: list[MediaMetadata] = []
        for item in items:
            if not isinstance(item, dict) or item.get("id") is None:
                logger.warning("Skipping TMDB result without an id for %r", title)
                continue
            item_kind = kind
            if kind == MediaKind.UNKNOWN:
                media_type = item.get("media_type")
                if media_type == "movie":
                    item_kind = MediaKind.MOVIE
                elif media_type == "tv":
                    item_kind = MediaKind.TV
                else:
                    continue
            try:
                results.append(_to_metadata(item, item_kind))
            except (TypeError, pydantic.ValidationError) as exc:
                logger.warning("Skipping malformed TMDB result %s: %s", item["id"], exc)
        logger.debug("TMDB %s search for %r: %d results", kind.value, title, len(results))
        return results


def _to_metadata(item: dict[str, Any], kind: MediaKind) -> MediaMetadata:
    if kind == MediaKind.TV:
        title = item.get("name") or item.get("title") or ""
        original_title = item.get("original_name")
        date_str = item.get("first_air_date")
    else:
        title = item.get("title") or item.get("name") or ""
        original_title = item.get("original_title")
        date_str = item.get("release_date")
    return MediaMetadata(
        title=title,
        kind=kind,
        provider="tmdb",
        provider_id=str(item["id"]),
        original_title=original_title,
        overview=item.get("overview") or None,
        year=_extract_year(date_str),
        release_date=_parse_date(date_str),
        vote_average=item.get("vote_average"),
        vote_count=item.get("vote_count"),
        popularity=item.get("popularity"),
        poster_path=item.get("poster_path"),
        backdrop_path=item.get("backdrop_path"),
        genre_ids=item.get("genre_ids") or [],
    )


def _extract_year(date_str: str | None) -> int | None:
    """Extracts the year as int from a YYYY-MM-DD string, or returns None."""
    if date_str and len(date_str) >= YEAR_LENGTH and date_str[:YEAR_LENGTH].isdigit():
        return int(date_str[:YEAR_LENGTH])
    return None


def _parse_date(date_str: str | None) -> date | None:
    if not date_str:
        return None
    try:
        return date.fromisoformat(date_str)
    except ValueError:
        return None
