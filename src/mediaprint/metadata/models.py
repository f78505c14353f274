"""Search result model for metadata providers.

MediaMetadata is the provider-agnostic shape of one search hit. It converts to
the camelCase ``mediaData`` blob stored in the fingerprint store, so a match
found by one client can be reused verbatim by every other client.
"""

from datetime import date
from typing import Any

from pydantic import BaseModel, Field

from mediaprint.models.core import MediaKind


class MediaMetadata(BaseModel):
    """Unified metadata for a movie or TV series."""

    title: str
    """Canonical title from the provider."""
    kind: MediaKind
    """Movie or TV; UNKNOWN only for providers that cannot tell."""
    provider: str
    """The source of this metadata (e.g. 'tmdb')."""
    provider_id: str
    """The ID of this item in the provider's system."""

    original_title: str | None = None
    overview: str | None = None
    year: int | None = None
    release_date: date | None = None
    """Release date for movies, first air date for TV."""

    vote_average: float | None = None  # 0-10 scale
    vote_count: int | None = None
    popularity: float | None = None
    poster_path: str | None = None
    backdrop_path: str | None = None
    genre_ids: list[int] = Field(default_factory=list)

    extra: dict[str, Any] = Field(default_factory=dict)
    """Additional provider-specific data."""

    def to_media_data(self) -> dict[str, Any]:
        """Return the fingerprint-store representation, without empty fields."""
        data: dict[str, Any] = {
            "title": self.title,
            "kind": self.kind.value,
            "year": self.year,
            "originalTitle": self.original_title,
            "overview": self.overview,
            "releaseDate": self.release_date.isoformat() if self.release_date else None,
            "provider": self.provider,
            "providerId": self.provider_id,
            "voteAverage": self.vote_average,
            "posterPath": self.poster_path,
            "backdropPath": self.backdrop_path,
            "genreIds": list(self.genre_ids),
        }
        return {key: value for key, value in data.items() if value not in (None, "", [])}
