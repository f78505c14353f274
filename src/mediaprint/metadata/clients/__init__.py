"""Client implementations for metadata providers."""

from mediaprint.metadata.clients.tmdb import TMDBClient

__all__ = ["TMDBClient"]
