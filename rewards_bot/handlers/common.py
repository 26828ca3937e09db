# rewards_bot/handlers/common.py
from __future__ import annotations

from aiogram import Router
from aiogram.filters import Command
from aiogram.types import Message

router = Router(name="common")


@router.message(Command("help"))
async def cmd_help(message: Message) -> None:
    await message.answer(
        "📌 Available commands:\n"
        "/spin — spin the wheel (needs your location)\n"
        "/redeem — exchange 100 points for a drink code\n"
        "/balance — points and wheel status\n"
        "/history — your recent spins and drink codes\n"
        "/ref — your invite link\n"
        "/help — this help"
    )
