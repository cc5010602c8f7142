from typing import Dict, List

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ..errors import InvalidInput, NotFound, store_error
from ..logging import get_logger
from ..models import Team, TeamResult

logger = get_logger(__name__)

RESULT_CODES = {"W": "Win", "D": "Draw", "L": "Loss"}


def save_results(db: Session, gameweek: int, results: Dict[int, str]) -> int:
    """Record W/D/L per team for a gameweek, replacing earlier entries."""
    if gameweek <= 0:
        raise InvalidInput("Gameweek must be positive")

    for team_id, code in results.items():
        if code not in RESULT_CODES:
            raise InvalidInput(f"Unknown result '{code}' for team {team_id}")
        if not db.get(Team, team_id):
            raise NotFound(f"Team {team_id} could not be found.")

    existing = {
        result.team_id: result
        for result in db.exec(select(TeamResult).where(TeamResult.gameweek == gameweek)).all()
    }

    try:
        for team_id, code in results.items():
            result = existing.get(team_id) or TeamResult(gameweek=gameweek, team_id=team_id, result=code)
            result.result = code
            db.add(result)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise store_error(logger, "results_upsert_failed", exc, "Unable to save results. Please try again.") from exc

    logger.info("results_saved", gameweek=gameweek, teams=len(results))
    return len(results)


def results_for_gameweek(db: Session, gameweek: int) -> List[TeamResult]:
    return db.exec(select(TeamResult).where(TeamResult.gameweek == gameweek)).all()
