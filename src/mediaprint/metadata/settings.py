"""Settings loader for metadata provider credentials.

Reads TMDB credentials from environment variables or a .env file.

Keys:
- TMDB_API_KEY (required for online title resolution)
- TMDB_LANGUAGE (optional, e.g. "en-US")
"""

from pydantic_settings import BaseSettings, SettingsConfigDict

from mediaprint.errors import MediaprintError

REQUIRED_KEYS = ("TMDB_API_KEY",)


class MissingAPIKeyError(MediaprintError):
    """A provider credential needed for online lookups is not configured."""

    def __init__(self, key: str) -> None:
        super().__init__(
            f"Missing required API key: {key}\n"
            "Set it in the environment or in a .env file to enable online lookups."
        )
        self.key = key


class Settings(BaseSettings):
    """Settings for metadata provider credentials."""

    TMDB_API_KEY: str | None = None
    TMDB_LANGUAGE: str | None = None

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    def require_keys(self) -> None:
        """Check that online title resolution is configured.

        Raises:
            MissingAPIKeyError: Naming the first unset key.
        """
        for key in REQUIRED_KEYS:
            if not getattr(self, key, None):
                raise MissingAPIKeyError(key)
