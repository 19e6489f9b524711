"""Configuration management for playlist-intel.

All configuration comes from environment variables. Uses pydantic-settings
so a malformed quota limit or port fails at startup rather than halfway
through a sync. Credentials are optional here; a sync without any usable
credential is reported as a failed run, not a startup error.
"""

from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .auth import Credentials, TokenCache, TokenSource, resolve_credentials


class Config(BaseSettings):
    """Server configuration loaded from environment variables."""

    youtube_api_key: SecretStr | None = Field(default=None, alias="YOUTUBE_API_KEY")
    youtube_access_token: SecretStr | None = Field(default=None, alias="YOUTUBE_ACCESS_TOKEN")
    youtube_token_expires_at: float | None = Field(default=None, alias="YOUTUBE_TOKEN_EXPIRES_AT")
    youtube_channel_id: str | None = Field(default=None, alias="YOUTUBE_CHANNEL_ID")
    youtube_api_base: str = Field(
        default="https://www.googleapis.com/youtube/v3", alias="YOUTUBE_API_BASE"
    )
    state_file: Path = Field(
        default=Path("~/.playlist-intel/state.json"), alias="PLAYLIST_INTEL_STATE_FILE"
    )
    quota_file: Path = Field(
        default=Path("~/.playlist-intel/quota.json"), alias="PLAYLIST_INTEL_QUOTA_FILE"
    )
    quota_daily_limit: int = Field(default=10_000, alias="QUOTA_DAILY_LIMIT", gt=0)
    quota_safety_margin: int = Field(default=500, alias="QUOTA_SAFETY_MARGIN", ge=0)
    http_timeout: float = Field(default=30.0, alias="HTTP_TIMEOUT", gt=0)
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    server_host: str = Field(default="127.0.0.1", alias="MCP_SERVER_HOST")
    server_port: int = Field(default=8000, alias="MCP_SERVER_PORT")

    model_config = SettingsConfigDict(
        populate_by_name=True,
        extra="ignore",
    )

    def token_cache(self, source: TokenSource | None = None) -> TokenCache:
        """Seed a token cache with the configured access token, if any."""
        return TokenCache(
            source=source,
            token=(
                self.youtube_access_token.get_secret_value()
                if self.youtube_access_token
                else None
            ),
            expires_at=self.youtube_token_expires_at,
        )

    async def credentials(self, token_cache: TokenCache | None = None) -> Credentials:
        """Build the credential variant from the key, channel and current token."""
        return await resolve_credentials(
            api_key=self.youtube_api_key.get_secret_value() if self.youtube_api_key else None,
            channel_id=self.youtube_channel_id or None,
            token_cache=token_cache if token_cache is not None else self.token_cache(),
        )


def load_config() -> Config:
    """Load and validate config from environment."""
    return Config()
