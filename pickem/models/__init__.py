from pickem import db  # noqa: F401 - imported for model imports

from .admin_action import AdminAction
from .game import Game, GameStatus
from .league import League
from .league_member import LeagueMember, LeagueRole
from .pick import Pick
from .points import SeasonPoints, WeeklyPoints
from .profile import Profile
from .team import Team
from .wrinkle import Wrinkle, WrinkleGame, WrinkleKind, WrinklePick

__all__ = [
    "Profile",
    "League",
    "LeagueMember",
    "LeagueRole",
    "Team",
    "Game",
    "GameStatus",
    "Pick",
    "Wrinkle",
    "WrinkleGame",
    "WrinkleKind",
    "WrinklePick",
    "WeeklyPoints",
    "SeasonPoints",
    "AdminAction",
]
