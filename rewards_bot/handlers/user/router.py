# rewards_bot/handlers/user/router.py
from aiogram import Router

from rewards_bot.handlers.user.arcade import router as arcade_router
from rewards_bot.handlers.user.history import router as history_router
from rewards_bot.handlers.user.redeem import router as redeem_router
from rewards_bot.handlers.user.referral import router as referral_router
from rewards_bot.handlers.user.spin import router as spin_router
from rewards_bot.handlers.user.start import router as start_router

router = Router(name="user")

router.include_router(start_router)
router.include_router(spin_router)
router.include_router(redeem_router)
router.include_router(referral_router)
router.include_router(arcade_router)
router.include_router(history_router)
