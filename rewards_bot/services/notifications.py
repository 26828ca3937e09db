# rewards_bot/services/notifications.py
from __future__ import annotations

import asyncio
import logging

from aiogram import Bot

log = logging.getLogger(__name__)


class Notifier:
    """
    Best-effort Telegram messages.

    Runs outside any DB transaction. Delivery is at-most-once and a
    failure never changes the outcome of the operation that triggered it.
    """

    def __init__(self, bot: Bot) -> None:
        self.bot = bot
        self._pending: set[asyncio.Task] = set()

    async def send(self, telegram_id: int, text: str) -> bool:
        try:
            await self.bot.send_message(chat_id=telegram_id, text=text)
            return True
        except Exception:
            log.warning("Notification to %s failed", telegram_id, exc_info=True)
            return False

    def dispatch(self, telegram_id: int, text: str) -> None:
        """Fire-and-forget: schedules `send` and returns immediately."""
        task = asyncio.create_task(self.send(telegram_id, text))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
