from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ..database import get_session
from ..logging import get_logger
from ..models import GameweekDeadline
from ..services.odds import latest_best_odds, latest_snapshot_for_gameweek, team_win_pct
from ..services.schedule import get_gameweek_context, odds_gameweek, pick_gameweek, resolve_odds_status

router = APIRouter(prefix="/api", tags=["api"])
logger = get_logger(__name__)


class DeadlineResponse(BaseModel):
    gameweek: int
    first_kickoff: datetime
    pick_deadline: datetime
    odds_refresh_at: datetime


class OddsStatusResponse(BaseModel):
    is_updating: bool
    deadline: Optional[datetime] = None
    refresh_at: Optional[datetime] = None
    snapshot_taken_at: Optional[datetime] = None


class GameweekResponse(BaseModel):
    pick_gameweek: int
    odds_gameweek: int
    upcoming: Optional[DeadlineResponse] = None
    last_closed: Optional[DeadlineResponse] = None
    odds_status: OddsStatusResponse


class BestOddsResponse(BaseModel):
    gameweek: int
    event_id: str
    commence_time: datetime
    home_team: str
    away_team: str
    best_home: Optional[float] = None
    best_draw: Optional[float] = None
    best_away: Optional[float] = None
    p_home: Optional[float] = None
    p_draw: Optional[float] = None
    p_away: Optional[float] = None


class TeamWinPctResponse(BaseModel):
    gameweek: int
    event_id: str
    commence_time: datetime
    team: str
    opponent: str
    side: str
    price_decimal: Optional[float] = None
    win_pct: Optional[float] = None


def _deadline(row: Optional[GameweekDeadline]) -> Optional[DeadlineResponse]:
    return DeadlineResponse.model_validate(row, from_attributes=True) if row else None


@router.get("/gameweeks/current", response_model=GameweekResponse)
async def current_gameweek(db: Session = Depends(get_session)):
    """Which gameweek is open for picks, which one odds are shown for, and whether odds are refreshing."""
    context = get_gameweek_context(db)
    odds_week = odds_gameweek(context)
    odds_rows = []
    snapshot = None
    try:
        odds_rows = latest_best_odds(db, odds_week)
        snapshot = latest_snapshot_for_gameweek(db, odds_week)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("current_gameweek_odds_failed", gameweek=odds_week, message=str(exc))

    status = resolve_odds_status(
        context.pick_row,
        [row["commence_time"] for row in odds_rows],
        snapshot.taken_at if snapshot else None,
    )

    return GameweekResponse(
        pick_gameweek=pick_gameweek(context),
        odds_gameweek=odds_week,
        upcoming=_deadline(context.upcoming),
        last_closed=_deadline(context.last_closed),
        odds_status=OddsStatusResponse(**vars(status)),
    )


@router.get("/odds/{gameweek}", response_model=List[BestOddsResponse])
async def odds_for_gameweek(gameweek: int, db: Session = Depends(get_session)):
    return latest_best_odds(db, gameweek)


@router.get("/odds/{gameweek}/win-pct", response_model=List[TeamWinPctResponse])
async def win_pct_for_gameweek(gameweek: int, db: Session = Depends(get_session)):
    return team_win_pct(db, gameweek)
