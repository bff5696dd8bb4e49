"""
Telegram Messenger
Sends bot replies through the Telegram Bot API sendMessage method
"""
import logging
from typing import Any, Dict, Optional

import requests

from app.core.errors import DeliveryError
from app.utils.registry import BudgetConfig

logger = logging.getLogger(__name__)


class TelegramMessenger:
    def __init__(self, token: str, api_base: str = "https://api.telegram.org", timeout: float = 10.0):
        self._token = token
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout

    def send_text(self, chat_id: int, text: str, keyboard: Optional[Dict[str, Any]] = None) -> bool:
        """
        Send a Markdown message, optionally with a reply keyboard.

        Returns:
            bool: True if Telegram accepted the message, False otherwise.
            Failures are logged and never raised to the caller.
        """
        payload: Dict[str, Any] = {
            "chat_id": chat_id,
            "text": text,
            "parse_mode": "Markdown",
        }
        if keyboard:
            payload["reply_markup"] = keyboard

        try:
            self._call("sendMessage", payload)
            return True
        except DeliveryError as e:
            logger.error(f"Failed to deliver message to chat {chat_id}: {e}")
            return False

    def _call(self, method: str, payload: Dict[str, Any]) -> None:
        url = f"{self._api_base}/bot{self._token}/{method}"
        try:
            response = requests.post(url, json=payload, timeout=self._timeout)
        except requests.RequestException as e:
            raise DeliveryError(f"{method} request failed: {e}") from e

        if not response.ok:
            raise DeliveryError(f"Telegram API error {response.status_code}: {response.text}")


def build_category_keyboard(config: BudgetConfig) -> Dict[str, Any]:
    return {
        "keyboard": config.keyboard_rows(3),
        "resize_keyboard": True,
        "one_time_keyboard": True,
    }
