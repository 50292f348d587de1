"""Application configuration via environment variables."""

import configparser
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from tiktok_login_kit.errors import ConfigError

# Keys expected in an .ini credentials file
INI_CLIENT_ID = "client_id"
INI_CLIENT_SECRET = "client_secret"
INI_REDIRECT_URI = "redirect_uri"
INI_REQUIRED = (INI_CLIENT_ID, INI_CLIENT_SECRET, INI_REDIRECT_URI)


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log output format",
    )

    # TikTok app credentials
    tiktok_client_key: str | None = Field(default=None, description="TikTok Client Key")
    tiktok_client_secret: str | None = Field(default=None, description="TikTok Client Secret")
    tiktok_redirect_uri: str = Field(
        default="http://localhost:8085/tiktok/callback",
        description="TikTok OAuth redirect URI",
    )

    # HTTP
    http_timeout_seconds: float = Field(
        default=30.0,
        description="Connect/response timeout applied to every API call",
    )

    # Publishing
    publish_poll_interval_seconds: float = Field(
        default=5.0,
        description="Seconds to sleep between publish status queries",
    )
    publish_poll_max_attempts: int = Field(
        default=60,
        description="Maximum status queries before wait_until_published gives up",
    )

    # Display API
    video_list_page_size: int = Field(
        default=20,
        description="Default number of videos requested per page (TikTok max is 20)",
    )

    def require_credentials(self) -> tuple[str, str, str]:
        """Return (client_key, client_secret, redirect_uri) or fail.

        Raises:
            ConfigError: If the client key or secret is not configured.
        """
        if not self.tiktok_client_key or not self.tiktok_client_secret:
            raise ConfigError(
                "TIKTOK_CLIENT_KEY and TIKTOK_CLIENT_SECRET environment variables are required. "
                "Create an app at https://developers.tiktok.com/apps and enable Login Kit + Content Posting API."
            )
        return self.tiktok_client_key, self.tiktok_client_secret, self.tiktok_redirect_uri

    @classmethod
    def from_ini(cls, path: str | Path) -> "Settings":
        """Build settings from an .ini file holding the app credentials.

        The file may use a section header or none at all; keys are
        ``client_id``, ``client_secret`` and ``redirect_uri``.

        Raises:
            ConfigError: If the file does not exist or misses a required key.
        """
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Ini file not found in requested path: {path}")

        text = path.read_text(encoding="utf-8")
        parser = configparser.ConfigParser(default_section="tiktok", interpolation=None)
        # parse_ini_file-style files often have no section header
        if not text.lstrip().startswith("["):
            text = "[tiktok]\n" + text
        try:
            parser.read_string(text, source=str(path))
        except configparser.Error as e:
            raise ConfigError(f"Ini file could not be parsed: {e}") from e

        values: dict[str, str] = dict(parser.defaults())
        for section in parser.sections():
            values.update(parser[section])

        for key in INI_REQUIRED:
            if not values.get(key):
                raise ConfigError(f"Ini file is missing required info: {key}")

        return cls(
            tiktok_client_key=values[INI_CLIENT_ID].strip("\"'"),
            tiktok_client_secret=values[INI_CLIENT_SECRET].strip("\"'"),
            tiktok_redirect_uri=values[INI_REDIRECT_URI].strip("\"'"),
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached client settings."""
    return Settings()


# Convenience alias
settings = get_settings()
