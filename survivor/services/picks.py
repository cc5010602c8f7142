from typing import Optional, Set

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from ..errors import InvalidInput, NotAuthorized, NotFound, store_error
from ..logging import get_logger
from ..models import Pick, PoolMember, Team, User
from ..timeutils import utcnow

logger = get_logger(__name__)


def map_pick_result(value: Optional[str]) -> str:
    """Collapse the stored pick result into WIN, LOSS or PENDING."""
    result = (value or "").lower()
    if result in ("win", "won"):
        return "WIN"
    if result in ("loss", "lost"):
        return "LOSS"
    return "PENDING"


def used_team_ids(
    db: Session,
    pool_id: str,
    user_id: int,
    exclude_gameweek: Optional[int] = None
) -> Set[int]:
    """Teams the user has already spent in this pool."""
    statement = select(Pick.team_id).where(
        Pick.pool_id == pool_id,
        Pick.user_id == user_id
    )
    if exclude_gameweek is not None:
        statement = statement.where(Pick.gameweek != exclude_gameweek)
    return set(db.exec(statement).all())


def get_pick(db: Session, pool_id: str, user_id: int, gameweek: int) -> Optional[Pick]:
    statement = select(Pick).where(
        Pick.pool_id == pool_id,
        Pick.user_id == user_id,
        Pick.gameweek == gameweek
    )
    return db.exec(statement).first()


def _save_pick(db: Session, pool_id: str, user_id: int, gameweek: int, team_id: int) -> Pick:
    """Insert or update the single pick for (pool, user, gameweek)."""
    existing = get_pick(db, pool_id, user_id, gameweek)
    if existing:
        existing.team_id = team_id
        existing.updated_at = utcnow()
        db.add(existing)
        db.commit()
        return existing

    pick = Pick(pool_id=pool_id, user_id=user_id, gameweek=gameweek, team_id=team_id)
    try:
        db.add(pick)
        db.commit()
        return pick
    except IntegrityError:
        # Another submission for the same gameweek landed first; last write wins
        db.rollback()
        existing = get_pick(db, pool_id, user_id, gameweek)
        existing.team_id = team_id
        existing.updated_at = utcnow()
        db.add(existing)
        db.commit()
        return existing


def submit_pick(db: Session, user: User, pool_id: str, team_id: int, gameweek: int) -> str:
    """
    Record the user's pick for a gameweek.

    Rejects non-members, unknown teams and any team the user already picked
    in another gameweek of the same pool. Re-submitting for the same
    gameweek replaces the earlier choice.
    """
    try:
        membership = db.exec(
            select(PoolMember).where(
                PoolMember.pool_id == pool_id,
                PoolMember.user_id == user.id
            )
        ).first()
    except SQLAlchemyError as exc:
        raise store_error(
            logger, "pick_membership_lookup_failed", exc,
            "Unable to verify your pool membership. Please try again later."
        ) from exc

    if not membership:
        raise NotAuthorized("You are not a member of this pool.")

    team = db.get(Team, team_id)
    if not team:
        raise NotFound("Selected team could not be found.")

    if team_id in used_team_ids(db, pool_id, user.id, exclude_gameweek=gameweek):
        raise InvalidInput("You have already used this team earlier in the season.")

    try:
        _save_pick(db, pool_id, user.id, gameweek, team_id)
    except SQLAlchemyError as exc:
        db.rollback()
        raise store_error(
            logger, "pick_upsert_failed", exc,
            "We could not save your pick. Please try again."
        ) from exc

    logger.info("pick_saved", pool_id=pool_id, user_id=user.id, gameweek=gameweek, team_id=team_id)
    return f"{team.name} locked in for GW{gameweek}."
