from .user import User
from .site import Site
from .spin import SpinRecord
from .redemption import RedemptionCode
from .rewards import DailyLimitEntry, RewardSource, ScoreSubmission

__all__ = [
    "User",
    "Site",
    "SpinRecord",
    "RedemptionCode",
    "DailyLimitEntry",
    "RewardSource",
    "ScoreSubmission",
]
