from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field, UniqueConstraint

from ..timeutils import utcnow


class Pick(SQLModel, table=True):
    __tablename__ = "picks"
    __table_args__ = (
        UniqueConstraint("pool_id", "user_id", "gameweek", name="unique_pool_user_gameweek"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    pool_id: str = Field(foreign_key="pools.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    gameweek: int = Field(index=True)
    team_id: int = Field(foreign_key="teams.id")

    # Written by the results step once the gameweek is settled: win, loss
    result: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
