"""Notification sender implementations."""

from .telegram_sender import TelegramNotificationSender

__all__ = [
    "TelegramNotificationSender",
]
