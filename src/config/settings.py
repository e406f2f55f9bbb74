"""Application settings using Pydantic."""

from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class AsanaSettings(BaseSettings):
    """Asana API configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ASANA_",
        extra="ignore",
    )

    access_token: Optional[SecretStr] = Field(default=None)
    # Comma-separated list of project gids
    project_gid: str = Field(default="")
    webhook_secret: Optional[SecretStr] = Field(default=None)
    api_url: str = Field(default="https://app.asana.com/api/1.0")
    timeout: float = Field(default=8.0)

    def get_project_gids(self) -> list[str]:
        """Get list of project gids to watch."""
        if not self.project_gid:
            return []
        return [g.strip() for g in self.project_gid.split(",") if g.strip()]


class TelegramSettings(BaseSettings):
    """Telegram Bot API configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TELEGRAM_",
        extra="ignore",
    )

    bot_token: Optional[SecretStr] = Field(default=None)
    chat_id: Optional[str] = Field(default=None)
    api_url: str = Field(default="https://api.telegram.org")
    timeout: float = Field(default=10.0)


class NotificationSettings(BaseSettings):
    """Event consolidation and rendering configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="NOTIFICATION_",
        extra="ignore",
    )

    language: str = Field(default="ru")
    cache_ttl_seconds: float = Field(default=300.0)
    dedup_window_seconds: float = Field(default=10.0)
    create_quiet_seconds: float = Field(default=5.0)
    edit_quiet_seconds: float = Field(default=30.0)
    text_limit: int = Field(default=400)
    # JSON object: assignee name or e-mail -> Telegram handle
    mentions: dict[str, str] = Field(default_factory=dict)


class SchedulerSettings(BaseSettings):
    """Scheduler configuration."""

    model_config = SettingsConfigDict(env_prefix="SCHEDULER_", extra="ignore")

    enabled: bool = Field(default=True)
    timezone: str = Field(default="Europe/Moscow")
    overdue_cron: str = Field(default="0 9 * * *")
    deadlines_cron: str = Field(default="0 10 * * *")
    weekly_cron: str = Field(default="0 10 * * sun")


class AppSettings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = Field(default=False)
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000)
    public_url: Optional[str] = Field(default=None)
    log_level: str = Field(default="INFO")

    # Nested settings - manually create to avoid env prefix issues
    @property
    def asana(self) -> AsanaSettings:
        return AsanaSettings()

    @property
    def telegram(self) -> TelegramSettings:
        return TelegramSettings()

    @property
    def notification(self) -> NotificationSettings:
        return NotificationSettings()

    @property
    def scheduler(self) -> SchedulerSettings:
        return SchedulerSettings()

    def missing_variables(self) -> list[str]:
        """Names of required environment variables that are not set."""
        checks = {
            "TELEGRAM_BOT_TOKEN": self.telegram.bot_token,
            "TELEGRAM_CHAT_ID": self.telegram.chat_id,
            "ASANA_ACCESS_TOKEN": self.asana.access_token,
            "ASANA_PROJECT_GID": self.asana.project_gid,
            "ASANA_WEBHOOK_SECRET": self.asana.webhook_secret,
            "PUBLIC_URL": self.public_url,
        }
        return [name for name, value in checks.items() if not value]


@lru_cache
def get_settings() -> AppSettings:
    """Get cached application settings."""
    return AppSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
