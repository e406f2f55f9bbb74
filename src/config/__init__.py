"""Configuration module."""

from .settings import (
    AppSettings,
    AsanaSettings,
    TelegramSettings,
    NotificationSettings,
    SchedulerSettings,
    get_settings,
)

__all__ = [
    "AppSettings",
    "AsanaSettings",
    "TelegramSettings",
    "NotificationSettings",
    "SchedulerSettings",
    "get_settings",
]
