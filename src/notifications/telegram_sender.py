"""Telegram notification sender implementation."""

import logging
from typing import Optional

import httpx

from ..domain.models import Notification

logger = logging.getLogger(__name__)


class TelegramNotificationSender:
    """Sends notifications to a Telegram chat via the Bot API."""

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        *,
        api_url: str = "https://api.telegram.org",
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize Telegram sender.

        Args:
            bot_token: Telegram bot token
            chat_id: Target chat id
            api_url: Bot API base URL
            timeout: Request timeout in seconds
            http_client: Optional HTTP client for testing
        """
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout
        self._http_client = http_client
        self._owns_client = http_client is None

    @property
    def channel_name(self) -> str:
        """Return channel name for this sender."""
        return "telegram"

    async def send(self, notification: Notification) -> bool:
        """Send notification to Telegram.

        Args:
            notification: Notification to send

        Returns:
            True if sent successfully, False otherwise
        """
        payload = self._build_payload(notification)

        client = self._http_client or httpx.AsyncClient()
        try:
            response = await client.post(
                f"{self._api_url}/bot{self._bot_token}/sendMessage",
                json=payload,
                timeout=self._timeout,
            )
            if response.status_code != 200:
                logger.warning(
                    f"Telegram rejected message: {response.status_code} "
                    f"{self._error_description(response)}"
                )
                return False
            if self._response_ok(response) is False:
                logger.warning(
                    f"Telegram returned not ok: {self._error_description(response)}"
                )
                return False
            return True
        except httpx.HTTPError as e:
            logger.warning(f"Telegram send failed: {e}")
            return False
        finally:
            if self._owns_client and not self._http_client:
                await client.aclose()

    def _build_payload(self, notification: Notification) -> dict:
        """Build sendMessage payload.

        Args:
            notification: Notification to convert

        Returns:
            Bot API request body
        """
        return {
            "chat_id": self._chat_id,
            "text": notification.text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }

    @staticmethod
    def _response_ok(response: httpx.Response) -> Optional[bool]:
        try:
            body = response.json()
        except ValueError:
            return None
        return body.get("ok") if isinstance(body, dict) else None

    @staticmethod
    def _error_description(response: httpx.Response) -> str:
        try:
            return str(response.json().get("description", ""))
        except ValueError:
            return ""
