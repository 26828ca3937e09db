# rewards_bot/handlers/router.py
from aiogram import Router

from rewards_bot.handlers.admin.router import router as admin_router
from rewards_bot.handlers.common import router as common_router
from rewards_bot.handlers.user.router import router as user_router

router = Router()

router.include_router(admin_router)   # staff commands first
router.include_router(user_router)
router.include_router(common_router)  # LAST = fallback only
