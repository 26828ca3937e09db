from rewards_bot.database.session import Database

__all__ = ["Database"]
