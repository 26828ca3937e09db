# rewards_bot/config/__init__.py
from __future__ import annotations

from .settings import Settings

__all__ = ["Settings"]
