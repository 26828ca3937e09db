from rewards_bot.handlers.router import router

__all__ = ["router"]
