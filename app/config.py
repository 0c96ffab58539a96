from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    app_name: str = "Slack Content Sync"
    debug: bool = False
    host: str = "127.0.0.1"
    port: int = 8000

    # Slack
    slack_bot_token: str = ""
    slack_channel_ids: str = ""  # Comma-separated channel IDs
    slack_source_id: str = "slack-default"
    slack_organization_id: str = "default"
    slack_sync_threads: bool = True
    slack_sync_files: bool = True
    slack_exclude_bots: bool = False
    slack_api_base_url: str = "https://slack.com/api/"
    slack_page_size: int = 50

    # Attachments
    max_file_size_bytes: int = 10 * 1024 * 1024  # 10MB
    slack_files_prefix: str = "slack-files"
    storage_dir: str = ""  # Empty means storage is not configured

    # Timeouts
    http_timeout_seconds: int = 30
    sync_timeout_seconds: float = 300

    model_config = ConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @property
    def channel_id_list(self) -> list[str]:
        """Configured channel IDs, in order, without blanks."""
        return [c.strip() for c in self.slack_channel_ids.split(",") if c.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
