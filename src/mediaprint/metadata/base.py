"""Base abstraction for metadata search providers.

The title resolver only depends on this interface, which keeps it testable
with in-memory fakes.
"""

from abc import ABC, abstractmethod

from mediaprint.metadata.models import MediaMetadata
from mediaprint.models.core import MediaKind


class MetadataClient(ABC):
    """Abstract base class for metadata search clients."""

    @abstractmethod
    async def search(
        self, title: str, kind: MediaKind = MediaKind.UNKNOWN
    ) -> list[MediaMetadata]:
        """Search for media items by title.

        Args:
            title: The title to search for.
            kind: Restricts the search to movies or TV; UNKNOWN searches both.

        Returns:
            Matching items in provider relevance order (possibly empty).

        Raises:
            ResolutionError: If the provider could not be queried.
        """
        raise NotImplementedError
