# rewards_bot/handlers/admin/router.py
from aiogram import Router

from rewards_bot.handlers.admin.verify_code import router as verify_code_router

router = Router(name="admin")

router.include_router(verify_code_router)
