from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field, UniqueConstraint

from ..timeutils import utcnow


class TeamResult(SQLModel, table=True):
    __tablename__ = "results"
    __table_args__ = (UniqueConstraint("gameweek", "team_id", name="unique_gameweek_team"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    gameweek: int = Field(index=True)
    team_id: int = Field(foreign_key="teams.id", index=True)
    result: str  # W, D, L
    created_at: datetime = Field(default_factory=utcnow)
