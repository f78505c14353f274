"""Metadata search providers used by the title resolver."""

from mediaprint.metadata.base import MetadataClient
from mediaprint.metadata.models import MediaMetadata
from mediaprint.metadata.settings import MissingAPIKeyError, Settings

__all__ = ["MediaMetadata", "MetadataClient", "MissingAPIKeyError", "Settings"]
