import uuid
from datetime import datetime
from enum import Enum
from typing import Optional
from sqlmodel import SQLModel, Field, UniqueConstraint

from ..timeutils import utcnow


class MemberStatus(str, Enum):
    ALIVE = "alive"
    ELIMINATED = "eliminated"


class Pool(SQLModel, table=True):
    __tablename__ = "pools"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True, max_length=36)
    name: str = Field(max_length=100)
    code: str = Field(unique=True, index=True, max_length=6)
    created_by: int = Field(foreign_key="users.id", index=True)
    lives_per_player: int = Field(default=1)
    entry_fee: Optional[float] = Field(default=None)
    prize_pool: Optional[float] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)


class PoolMember(SQLModel, table=True):
    __tablename__ = "pool_members"
    __table_args__ = (UniqueConstraint("pool_id", "user_id", name="unique_pool_user"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    pool_id: str = Field(foreign_key="pools.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    status: str = Field(default=MemberStatus.ALIVE.value)  # alive, eliminated
    lives_remaining: int = Field(default=1)
    joined_at: datetime = Field(default_factory=utcnow)
