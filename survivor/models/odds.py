from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field, UniqueConstraint

from ..timeutils import utcnow


class OddsSnapshot(SQLModel, table=True):
    """One ingestion run against the odds feed."""
    __tablename__ = "odds_snapshots"

    id: Optional[int] = Field(default=None, primary_key=True)
    gameweek: int = Field(index=True)
    taken_at: datetime = Field(default_factory=utcnow, index=True)
    window_start: Optional[datetime] = Field(default=None)
    window_end: Optional[datetime] = Field(default=None)


class GameOdds(SQLModel, table=True):
    __tablename__ = "game_odds"
    __table_args__ = (
        UniqueConstraint("snapshot_id", "event_id", "bookmaker", name="unique_snapshot_event_bookmaker"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    snapshot_id: int = Field(foreign_key="odds_snapshots.id", index=True)
    event_id: str = Field(index=True)
    bookmaker: str
    commence_time: datetime
    home_team: str
    away_team: str
    last_update: Optional[datetime] = Field(default=None)

    home_price_decimal: Optional[float] = Field(default=None)
    draw_price_decimal: Optional[float] = Field(default=None)
    away_price_decimal: Optional[float] = Field(default=None)

    implied_home: Optional[float] = Field(default=None)
    implied_draw: Optional[float] = Field(default=None)
    implied_away: Optional[float] = Field(default=None)
    margin: Optional[float] = Field(default=None)
