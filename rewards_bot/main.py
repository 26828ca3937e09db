# rewards_bot/main.py
import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from redis.asyncio import Redis

from rewards_bot.config import Settings
from rewards_bot.database import Database

# IMPORTANT: register models
from rewards_bot.database.models import *  # noqa: F401,F403

from rewards_bot.handlers import router as handlers_router
from rewards_bot.scheduler import setup_scheduler
from rewards_bot.services.engine import RewardsEngine
from rewards_bot.services.notifications import Notifier
from rewards_bot.utils.middleware import DbSessionMiddleware


def setup_logging(is_dev: bool) -> None:
    """
    Clean production logging:
    - app logs: INFO (or DEBUG in dev)
    - SQLAlchemy / driver logs: WARNING+ (no query/pool spam)
    """
    app_level = logging.DEBUG if is_dev else logging.INFO

    logging.basicConfig(
        level=app_level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    for name in (
        "sqlalchemy",
        "sqlalchemy.engine",
        "sqlalchemy.pool",
        "sqlalchemy.orm",
        "asyncpg",
        "aiosqlite",
        "apscheduler",
    ):
        logging.getLogger(name).setLevel(logging.WARNING)


async def main() -> None:
    settings = Settings.load()
    setup_logging(settings.is_dev)
    log = logging.getLogger("rewards_bot")

    db = Database(settings.database_url)
    await db.init_models()
    log.info("DB initialized")

    redis_client = Redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)
    await redis_client.ping()
    log.info("Redis connected")

    bot = Bot(
        token=settings.bot_token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )
    notifier = Notifier(bot)

    engine = RewardsEngine(
        settings=settings,
        db=db,
        redis_client=redis_client,
        notifier=notifier,
    )

    dp = Dispatcher()

    # Inject workflow data
    dp.workflow_data["settings"] = settings
    dp.workflow_data["db"] = db
    dp.workflow_data["engine"] = engine

    # DB session per update
    dp.update.middleware(DbSessionMiddleware(db))

    dp.include_router(handlers_router)

    scheduler = setup_scheduler(bot=bot, db=db, settings=settings)
    log.info("Scheduler started (timezone=%s)", settings.timezone)

    try:
        await dp.start_polling(bot)
    except (asyncio.CancelledError, KeyboardInterrupt):
        pass
    except Exception:
        log.exception("Bot crashed")
        raise
    finally:
        try:
            scheduler.shutdown(wait=False)
        except Exception:
            log.exception("Failed to shutdown scheduler")

        try:
            await notifier.drain()
        except Exception:
            log.exception("Failed to flush notifications")

        try:
            await redis_client.aclose()
        except Exception:
            log.exception("Failed to close Redis")

        try:
            await db.close()
        except Exception:
            log.exception("Failed to close DB")

        try:
            await bot.session.close()
        except Exception:
            log.exception("Failed to close bot session")


if __name__ == "__main__":
    asyncio.run(main())
