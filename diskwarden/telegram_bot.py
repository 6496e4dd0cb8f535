import logging
from typing import Optional, Protocol

from telegram import Bot
from telegram.error import TelegramError

from .errors import SinkError

logger = logging.getLogger(__name__)


class AlertSink(Protocol):
    """Anything that can deliver an alert message."""

    async def send_alert(self, message: str) -> None:
        """Deliver a message, raising SinkError on failure."""
        ...


class TelegramAlerter:
    """Sends disk alerts to a Telegram chat."""

    def __init__(
        self,
        token: str,
        chat_id: str,
        topic_id: Optional[int] = None,
        bot: Optional[Bot] = None,
    ):
        self.chat_id = chat_id
        self.topic_id = topic_id
        self._bot = bot or Bot(token)

    async def start(self) -> None:
        """Initialize the bot connection."""
        try:
            await self._bot.initialize()
        except TelegramError as e:
            # Sending still retries the connection on every alert
            logger.warning(f"Telegram bot initialization failed: {e}")

    async def stop(self) -> None:
        """Release the bot connection."""
        try:
            await self._bot.shutdown()
        except TelegramError as e:
            logger.warning(f"Telegram bot shutdown failed: {e}")

    async def send_alert(self, message: str) -> None:
        """
        Send a plain-text alert to the configured chat.

        Raises:
            SinkError: if Telegram rejected the message or could not be reached
        """
        kwargs = {
            "chat_id": self.chat_id,
            "text": message,
        }
        if self.topic_id:
            kwargs["message_thread_id"] = self.topic_id

        try:
            await self._bot.send_message(**kwargs)
        except TelegramError as e:
            raise SinkError(f"Failed to send Telegram message: {e}") from e
