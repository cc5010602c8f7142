from typing import Optional
from sqlmodel import SQLModel, Field


class Team(SQLModel, table=True):
    """Premier League clubs. Reference data, seeded once."""
    __tablename__ = "teams"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(unique=True, index=True)
