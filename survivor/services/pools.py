import secrets
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from ..config import APP_URL, POOL_CODE_ALPHABET, POOL_CODE_LENGTH
from ..errors import InvalidInput, NotAuthorized, NotFound, store_error
from ..logging import get_logger
from ..models import MemberStatus, Pick, Pool, PoolMember, User
from .picks import map_pick_result

logger = get_logger(__name__)

CODE_ATTEMPTS = 5


class PoolRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    PLAYER = "player"
    VIEWER = "viewer"


def normalize_pool_role(role: Optional[str]) -> Optional[PoolRole]:
    try:
        return PoolRole(role) if role else None
    except ValueError:
        return None


def format_pool_role(role: Optional[PoolRole]) -> str:
    if role is None:
        return "--"
    return role.value.capitalize()


def is_owner(role: Optional[PoolRole]) -> bool:
    return role == PoolRole.OWNER


def is_admin(role: Optional[PoolRole]) -> bool:
    return role in (PoolRole.OWNER, PoolRole.ADMIN)


def role_for(pool: Pool, user_id: int, is_member: bool = True) -> Optional[PoolRole]:
    """Only ownership is tracked; every other member is a player."""
    if pool.created_by == user_id:
        return PoolRole.OWNER
    return PoolRole.PLAYER if is_member else None


def generate_pool_code() -> str:
    """Map random bytes through the code alphabet (modulo bias is accepted)."""
    code = ""
    while len(code) < POOL_CODE_LENGTH:
        for byte in secrets.token_bytes(POOL_CODE_LENGTH):
            if len(code) == POOL_CODE_LENGTH:
                break
            code += POOL_CODE_ALPHABET[byte % len(POOL_CODE_ALPHABET)]
    return code


def get_membership(db: Session, pool_id: str, user_id: int) -> Optional[PoolMember]:
    statement = select(PoolMember).where(
        PoolMember.pool_id == pool_id,
        PoolMember.user_id == user_id
    )
    return db.exec(statement).first()


def create_pool(db: Session, user: User, name: str, lives: int) -> Dict[str, Any]:
    """
    Create a pool and its owner membership in one transaction.

    A code that collides with an existing pool is replaced with a fresh one.
    """
    for attempt in range(1, CODE_ATTEMPTS + 1):
        pool = Pool(
            name=name,
            code=generate_pool_code(),
            created_by=user.id,
            lives_per_player=lives
        )
        try:
            db.add(pool)
            db.flush()
            db.add(PoolMember(
                pool_id=pool.id,
                user_id=user.id,
                status=MemberStatus.ALIVE.value,
                lives_remaining=pool.lives_per_player
            ))
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            logger.warning("pool_code_collision", attempt=attempt, message=str(exc.orig))
            continue
        except SQLAlchemyError as exc:
            db.rollback()
            raise store_error(
                logger, "pool_insert_failed", exc,
                "We could not create the pool right now. Please try again."
            ) from exc

        db.refresh(pool)
        logger.info("pool_created", pool_id=pool.id, user_id=user.id)
        return {
            "pool_id": pool.id,
            "pool_code": pool.code,
            "lives_per_player": pool.lives_per_player,
        }

    logger.error("pool_code_exhausted", attempts=CODE_ATTEMPTS, user_id=user.id)
    raise store_error(
        logger, "pool_insert_failed", RuntimeError("no free pool code"),
        "We could not create the pool right now. Please try again."
    )


def find_pool(db: Session, raw_code: str) -> Optional[Pool]:
    """Look a pool up by its join code, or by its id for longer input."""
    value = raw_code.strip()

    if len(value) == POOL_CODE_LENGTH:
        return db.exec(select(Pool).where(Pool.code == value.upper())).first()

    return db.get(Pool, value)


def join_pool(db: Session, user: User, raw_code: str) -> Dict[str, Any]:
    try:
        pool = find_pool(db, raw_code)
    except SQLAlchemyError as exc:
        raise store_error(
            logger, "pool_lookup_failed", exc,
            "We could not find a pool with that code."
        ) from exc

    if not pool:
        logger.info("pool_lookup_missed", code=raw_code, user_id=user.id)
        raise NotFound("We could not find a pool with that code.")

    if get_membership(db, pool.id, user.id):
        raise InvalidInput("You are already part of this pool.")

    lives = pool.lives_per_player or 1
    membership = PoolMember(
        pool_id=pool.id,
        user_id=user.id,
        status=MemberStatus.ALIVE.value,
        lives_remaining=lives
    )
    try:
        db.add(membership)
        db.commit()
    except IntegrityError as exc:
        # Unique (pool_id, user_id): a concurrent join got there first
        db.rollback()
        raise InvalidInput("You are already part of this pool.") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise store_error(
            logger, "pool_member_insert_failed", exc,
            "We could not add you to the pool. Please try again."
        ) from exc

    logger.info("pool_joined", pool_id=pool.id, user_id=user.id)
    return {"pool_id": pool.id, "pool_code": pool.code}


def remove_member(db: Session, user: User, pool_id: str, membership_id: int) -> None:
    pool = db.get(Pool, pool_id)
    if not pool:
        raise NotFound("Unable to load pool details.")

    if pool.created_by != user.id:
        raise NotAuthorized("Only the pool owner can remove members.")

    membership = db.get(PoolMember, membership_id)
    if not membership or membership.pool_id != pool.id:
        raise NotFound("Member not found.")

    if membership.user_id == pool.created_by:
        raise InvalidInput("You cannot remove the pool owner.")

    try:
        db.delete(membership)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise store_error(
            logger, "pool_member_delete_failed", exc,
            "Unable to remove that member right now."
        ) from exc

    logger.info("pool_member_removed", pool_id=pool.id, membership_id=membership_id)


def share_message(db: Session, pool_id: str) -> str:
    pool = db.get(Pool, pool_id)
    if not pool:
        raise NotFound("Unable to load pool details. Copy the code manually.")

    join_url = f"{APP_URL.rstrip('/')}/pool"
    return (
        f"Join our PL Survivor Pool: {pool.name or 'Survivor Pool'}\n"
        f"Pool Code: {pool.code or '—'}\n"
        f"Sign up at {join_url} and use the code to enter."
    )


def normalize_member_status(status: Optional[str]) -> str:
    value = (status or "").lower()
    if value in ("alive", "active"):
        return "ALIVE"
    if value in ("eliminated", "out"):
        return "ELIMINATED"
    return "UNKNOWN"


def lives_display(lives_remaining: int, lives_per_player: Optional[int]) -> str:
    if lives_per_player is None:
        return str(lives_remaining)
    return f"{lives_remaining}/{lives_per_player}"


def member_summaries(
    members: Iterable[PoolMember],
    picks: Iterable[Pick],
    names: Dict[int, str],
    team_names: Dict[int, str],
) -> List[Dict[str, Any]]:
    """Per-member standing: status, lives, rounds survived and teams used."""
    picks_by_user: Dict[int, List[Pick]] = {}
    for pick in picks:
        picks_by_user.setdefault(pick.user_id, []).append(pick)

    total_teams = len(team_names)
    summaries = []
    for member in members:
        member_picks = picks_by_user.get(member.user_id, [])
        used_ids = list(dict.fromkeys(p.team_id for p in member_picks if p.team_id is not None))
        summaries.append({
            "membership_id": member.id,
            "user_id": member.user_id,
            "name": names.get(member.user_id, "Player"),
            "status": normalize_member_status(member.status),
            "lives_remaining": member.lives_remaining or 0,
            "rounds_survived": sum(1 for p in member_picks if map_pick_result(p.result) == "WIN"),
            "teams_used": [team_names.get(team_id, f"Team {team_id}") for team_id in used_ids],
            "teams_available_count": max(total_teams - len(used_ids), 0),
        })
    return summaries


def sort_leaderboard(summaries: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Alive players first, then by lives remaining."""
    def key(summary):
        return (
            0 if summary["status"] == "ALIVE" else 1,
            summary["status"],
            -summary["lives_remaining"],
        )

    return sorted(summaries, key=key)


def weekly_picks(
    picks: Iterable[Pick],
    names: Dict[int, str],
    team_names: Dict[int, str],
    closed_gameweek: Optional[int],
    limit: int = 3,
) -> List[Dict[str, Any]]:
    """Picks grouped by settled gameweek, newest first."""
    by_gameweek: Dict[int, List[Pick]] = {}
    for pick in picks:
        by_gameweek.setdefault(pick.gameweek, []).append(pick)

    weeks = []
    for gameweek in sorted(by_gameweek):
        if closed_gameweek is not None and gameweek > closed_gameweek:
            continue
        weeks.append({
            "gameweek": gameweek,
            "picks": [
                {
                    "player": names.get(pick.user_id, "Player"),
                    "team": team_names.get(pick.team_id),
                    "result": map_pick_result(pick.result),
                }
                for pick in by_gameweek[gameweek]
            ],
        })

    return list(reversed(weeks[-limit:]))
