"""
Gameweek resolution against the deadline table.

The "pick" gameweek is the next one whose deadline is still ahead; the
"odds" gameweek is the last one to close, since its snapshot carries the
prices the results will be judged against.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ..config import DEADLINE_OFFSET, DEFAULT_GAMEWEEK
from ..logging import get_logger
from ..models import GameweekDeadline
from ..timeutils import to_naive_utc, utcnow

logger = get_logger(__name__)


@dataclass
class GameweekContext:
    upcoming: Optional[GameweekDeadline] = None
    last_closed: Optional[GameweekDeadline] = None

    @property
    def pick_row(self) -> Optional[GameweekDeadline]:
        return self.upcoming or self.last_closed

    @property
    def odds_row(self) -> Optional[GameweekDeadline]:
        return self.last_closed or self.upcoming


@dataclass
class OddsStatus:
    is_updating: bool
    deadline: Optional[datetime]
    refresh_at: Optional[datetime]
    snapshot_taken_at: Optional[datetime]


def get_gameweek_context(db: Session, now: Optional[datetime] = None) -> GameweekContext:
    """Find the next open deadline and the most recently closed one."""
    now = to_naive_utc(now) if now else utcnow()

    try:
        upcoming = db.exec(
            select(GameweekDeadline)
            .where(GameweekDeadline.pick_deadline >= now)
            .order_by(GameweekDeadline.pick_deadline)
            .limit(1)
        ).first()
        last_closed = db.exec(
            select(GameweekDeadline)
            .where(GameweekDeadline.pick_deadline <= now)
            .order_by(GameweekDeadline.pick_deadline.desc())
            .limit(1)
        ).first()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("gameweek_lookup_failed", message=str(exc))
        return GameweekContext()

    return GameweekContext(upcoming=upcoming, last_closed=last_closed)


def pick_gameweek(context: GameweekContext) -> int:
    row = context.pick_row
    return row.gameweek if row else DEFAULT_GAMEWEEK


def odds_gameweek(context: GameweekContext) -> int:
    row = context.odds_row
    return row.gameweek if row else pick_gameweek(context)


def resolve_odds_status(
    deadline_row: Optional[GameweekDeadline],
    commence_times: Iterable[datetime],
    snapshot_taken_at: Optional[datetime],
    now: Optional[datetime] = None,
) -> OddsStatus:
    """
    Decide whether odds are mid-refresh for the pick gameweek.

    Without a deadline row, the deadline and refresh time are derived from
    the earliest kickoff in the odds feed.
    """
    now = to_naive_utc(now) if now else utcnow()
    deadline = deadline_row.pick_deadline if deadline_row else None
    refresh_at = deadline_row.odds_refresh_at if deadline_row else None

    if deadline is None or refresh_at is None:
        kickoffs = [to_naive_utc(t) for t in commence_times if t is not None]
        if kickoffs:
            earliest = min(kickoffs)
            deadline = deadline or earliest - DEADLINE_OFFSET
            refresh_at = refresh_at or earliest + DEADLINE_OFFSET

    taken_at = to_naive_utc(snapshot_taken_at) if snapshot_taken_at else None
    is_updating = (
        deadline is not None
        and refresh_at is not None
        and deadline <= now < refresh_at
        and (taken_at is None or taken_at < deadline)
    )

    return OddsStatus(
        is_updating=is_updating,
        deadline=deadline,
        refresh_at=refresh_at,
        snapshot_taken_at=taken_at,
    )


def format_deadline_countdown(deadline: datetime, now: Optional[datetime] = None) -> str:
    now = to_naive_utc(now) if now else utcnow()
    remaining = to_naive_utc(deadline) - now
    if remaining.total_seconds() <= 0:
        return "Deadline passed"

    total_minutes = int(remaining.total_seconds() // 60)
    days, rest = divmod(total_minutes, 60 * 24)
    hours, minutes = divmod(rest, 60)
    return f"{days}d {hours}h {minutes}m"


def season_label(first_kickoff: Optional[datetime], fallback: str = "Premier League Survivor") -> str:
    if not first_kickoff:
        return fallback
    start_year = first_kickoff.year
    return f"{start_year}/{str(start_year + 1)[-2:]} Premier League"
