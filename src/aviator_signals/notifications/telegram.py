"""Telegram Bot API notifications for newly generated signals."""

from __future__ import annotations

import logging

import httpx

from aviator_signals.common.http import HttpClient
from aviator_signals.config import get_settings
from aviator_signals.signals.formatters import format_telegram_signal
from aviator_signals.signals.models import Signal

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Push new signals to a Telegram chat.

    Usable directly as a ``SignalManager`` listener. Errors are logged but
    never raised.
    """

    def __init__(
        self,
        bot_token: str | None = None,
        chat_id: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._bot_token = bot_token or settings.telegram_bot_token
        self._chat_id = chat_id or settings.telegram_chat_id
        self._transport = transport
        self._client: HttpClient | None = None

    @property
    def enabled(self) -> bool:
        return bool(self._bot_token and self._chat_id)

    def _get_client(self) -> HttpClient:
        if self._client is None:
            self._client = HttpClient(base_url="https://api.telegram.org", transport=self._transport)
        return self._client

    async def send_message(self, text: str, parse_mode: str = "Markdown") -> bool:
        """Send a message. Returns True on success."""
        if not self.enabled:
            logger.debug("Telegram not configured, skipping message")
            return False

        try:
            await self._get_client().post(
                f"/bot{self._bot_token}/sendMessage",
                json={
                    "chat_id": self._chat_id,
                    "text": text,
                    "parse_mode": parse_mode,
                },
            )
            return True
        except httpx.HTTPError:
            logger.warning("Failed to send Telegram message", exc_info=True)
            return False

    async def __call__(self, signal: Signal) -> None:
        if await self.send_message(format_telegram_signal(signal)):
            logger.info("Telegram: sent signal %s for %s", signal.id, signal.platform.value)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
