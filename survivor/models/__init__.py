from .user import User
from .session import Session
from .team import Team
from .pool import Pool, PoolMember, MemberStatus
from .pick import Pick
from .result import TeamResult
from .gameweek import GameweekDeadline
from .odds import OddsSnapshot, GameOdds

__all__ = [
    "User",
    "Session",
    "Team",
    "Pool",
    "PoolMember",
    "MemberStatus",
    "Pick",
    "TeamResult",
    "GameweekDeadline",
    "OddsSnapshot",
    "GameOdds",
]
