from datetime import datetime
from sqlmodel import SQLModel, Field


class GameweekDeadline(SQLModel, table=True):
    """One row per gameweek, derived from the fixture feed."""
    __tablename__ = "gameweek_deadlines"

    gameweek: int = Field(primary_key=True)
    first_kickoff: datetime
    pick_deadline: datetime = Field(index=True)
    odds_refresh_at: datetime
