from dailypicks import db  # noqa: F401 - imported for model imports

from .daily_score import DailyScore
from .game import Game
from .pick import Pick
from .profile import Profile
from .slate import Slate
from .streak import Streak

__all__ = [
    "Profile",
    "Slate",
    "Game",
    "Pick",
    "DailyScore",
    "Streak",
]
