from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ..config import TEMPLATES_DIR
from ..database import get_session
from ..dependencies import require_user
from ..logging import get_logger
from ..models import Pick, Pool, PoolMember, Team, User
from ..services.odds import latest_best_odds, latest_snapshot_for_gameweek
from ..services.picks import map_pick_result
from ..services.schedule import get_gameweek_context, odds_gameweek, pick_gameweek, resolve_odds_status

router = APIRouter(tags=["dashboard"])
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
logger = get_logger(__name__)


@router.get("/dashboard", response_class=HTMLResponse)
async def dashboard(
    request: Request,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    context = get_gameweek_context(db)
    pick_week = pick_gameweek(context)
    odds_week = odds_gameweek(context)

    memberships = db.exec(
        select(PoolMember).where(PoolMember.user_id == current_user.id)
    ).all()
    pool_ids = [membership.pool_id for membership in memberships]

    pools = {}
    current_picks = {}
    if pool_ids:
        pools = {pool.id: pool for pool in db.exec(select(Pool).where(Pool.id.in_(pool_ids))).all()}
        picks = db.exec(
            select(Pick).where(
                Pick.user_id == current_user.id,
                Pick.gameweek == pick_week,
                Pick.pool_id.in_(pool_ids)
            )
        ).all()
        team_ids = [pick.team_id for pick in picks]
        team_names = {
            team.id: team.name
            for team in db.exec(select(Team).where(Team.id.in_(team_ids))).all()
        } if team_ids else {}
        current_picks = {
            pick.pool_id: {"team_name": team_names.get(pick.team_id), "result": map_pick_result(pick.result)}
            for pick in picks
        }

    pool_cards = []
    for membership in memberships:
        pool = pools.get(membership.pool_id)
        pick = current_picks.get(membership.pool_id, {"team_name": None, "result": None})
        pool_cards.append({
            "pool_id": membership.pool_id,
            "name": pool.name if pool else "Pool",
            "code": pool.code if pool else None,
            "lives_per_player": pool.lives_per_player if pool else None,
            "status": membership.status,
            "lives_remaining": membership.lives_remaining,
            "current_pick": pick["team_name"],
            "current_pick_status": pick["result"],
        })

    odds_rows = []
    snapshot = None
    try:
        odds_rows = latest_best_odds(db, odds_week)
        snapshot = latest_snapshot_for_gameweek(db, odds_week)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("dashboard_odds_failed", gameweek=odds_week, message=str(exc))

    odds_status = resolve_odds_status(
        context.pick_row,
        [row["commence_time"] for row in odds_rows],
        snapshot.taken_at if snapshot else None,
    )

    return templates.TemplateResponse(request, "dashboard.html", {
        "current_user": current_user,
        "pick_gameweek": pick_week,
        "odds_gameweek": odds_week,
        "pools": pool_cards,
        "odds_rows": odds_rows,
        "odds_status": odds_status,
    })
