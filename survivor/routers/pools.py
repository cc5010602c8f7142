from typing import Optional

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ..config import POOL_CODE_LENGTH, TEMPLATES_DIR
from ..database import get_session
from ..dependencies import require_user
from ..errors import unexpected_errors
from ..logging import get_logger
from ..models import Pick, Pool, PoolMember, Team, User
from ..schemas import CreatePoolInput, JoinPoolInput, RemoveMemberInput, SubmitPickInput, parse_input
from ..services import pools as pool_service
from ..services.picks import map_pick_result, submit_pick
from ..services.odds import team_win_pct
from ..services.schedule import (
    format_deadline_countdown,
    get_gameweek_context,
    pick_gameweek,
    season_label,
)

router = APIRouter(prefix="/pool", tags=["pools"])
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
logger = get_logger(__name__)


@router.get("", response_class=HTMLResponse)
async def pools_list(
    request: Request,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    memberships = db.exec(
        select(PoolMember).where(PoolMember.user_id == current_user.id)
    ).all()

    pools_data = []
    for membership in memberships:
        pool = db.get(Pool, membership.pool_id)
        if not pool:
            continue
        member_count = len(db.exec(
            select(PoolMember.id).where(PoolMember.pool_id == pool.id)
        ).all())
        role = pool_service.role_for(pool, current_user.id)
        pools_data.append({
            "id": pool.id,
            "name": pool.name,
            "code": pool.code,
            "member_count": member_count,
            "status": membership.status,
            "lives_remaining": membership.lives_remaining,
            "lives_per_player": pool.lives_per_player,
            "role": pool_service.format_pool_role(role),
        })

    return templates.TemplateResponse(request, "pool/list.html", {
        "current_user": current_user,
        "pools": pools_data
    })


@router.get("/create", response_class=HTMLResponse)
async def create_pool_page(request: Request, current_user: User = Depends(require_user)):
    return templates.TemplateResponse(request, "pool/create.html", {"current_user": current_user})


@router.post("/create")
async def create_pool(
    name: Optional[str] = Form(None),
    lives: Optional[str] = Form(None),
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    data = parse_input(CreatePoolInput, {"name": name, "lives": lives}, "Invalid pool details provided")

    with unexpected_errors(logger, "create_pool_unexpected_error", "Unexpected error when creating pool. Please try again."):
        created = pool_service.create_pool(db, current_user, data.name, data.lives)

    return {"success": True, **created}


@router.get("/join", response_class=HTMLResponse)
async def join_pool_page(
    request: Request,
    code: Optional[str] = None,
    current_user: User = Depends(require_user)
):
    return templates.TemplateResponse(request, "pool/join.html", {
        "current_user": current_user,
        "code": code or "",
        "code_length": POOL_CODE_LENGTH
    })


@router.post("/join")
async def join_pool(
    pool_code: Optional[str] = Form(None),
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    data = parse_input(JoinPoolInput, {"pool_code": pool_code}, "Invalid pool code provided")

    with unexpected_errors(logger, "join_pool_unexpected_error", "Unexpected error when joining pool. Please try again."):
        joined = pool_service.join_pool(db, current_user, data.pool_code)

    return {"success": True, **joined}


@router.get("/{pool_id}", response_class=HTMLResponse)
async def pool_detail(
    pool_id: str,
    request: Request,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    pool = db.get(Pool, pool_id)
    if not pool:
        raise HTTPException(status_code=404, detail="Pool not found")

    if not pool_service.get_membership(db, pool.id, current_user.id):
        raise HTTPException(status_code=403, detail="You are not a member of this pool.")

    context = get_gameweek_context(db)
    gameweek = pick_gameweek(context)
    pick_row = context.pick_row

    try:
        win_pct_rows = team_win_pct(db, gameweek)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("pool_page_odds_failed", pool_id=pool.id, message=str(exc))
        win_pct_rows = []

    teams = db.exec(select(Team).order_by(Team.name)).all()
    team_names = {team.id: team.name for team in teams}

    members = db.exec(select(PoolMember).where(PoolMember.pool_id == pool.id)).all()
    picks = db.exec(select(Pick).where(Pick.pool_id == pool.id)).all()
    user_ids = [member.user_id for member in members]
    users = db.exec(select(User).where(User.id.in_(user_ids))).all() if user_ids else []
    names = {user.id: user.display_name for user in users}

    current_pick = None
    used_ids = set()
    for pick in picks:
        if pick.user_id != current_user.id:
            continue
        if pick.gameweek == gameweek:
            current_pick = {
                "team_id": pick.team_id,
                "team_name": team_names.get(pick.team_id),
                "result": map_pick_result(pick.result),
            }
        else:
            used_ids.add(pick.team_id)

    summaries = pool_service.member_summaries(members, picks, names, team_names)
    me = next((s for s in summaries if s["user_id"] == current_user.id), None)

    manage_members = sorted(
        (
            {
                "membership_id": member.id,
                "user_id": member.user_id,
                "name": names.get(member.user_id, "Player"),
                "is_owner_member": member.user_id == pool.created_by,
                "is_current_user": member.user_id == current_user.id,
                "status": member.status,
                "lives_remaining": member.lives_remaining,
            }
            for member in members
        ),
        key=lambda m: (not m["is_owner_member"], not m["is_current_user"], m["name"])
    )

    closed_gameweek = context.last_closed.gameweek if context.last_closed else None

    return templates.TemplateResponse(request, "pool/detail.html", {
        "current_user": current_user,
        "pool": pool,
        "is_owner": pool_service.is_owner(pool_service.role_for(pool, current_user.id)),
        "gameweek": gameweek,
        "deadline": pick_row.pick_deadline if pick_row else None,
        "deadline_countdown": format_deadline_countdown(pick_row.pick_deadline) if pick_row else None,
        "season": season_label(pick_row.first_kickoff if pick_row else None),
        "teams": [{"id": t.id, "name": t.name, "used": t.id in used_ids} for t in teams],
        "current_pick": current_pick,
        "me": me,
        "lives_display": pool_service.lives_display(me["lives_remaining"] if me else 0, pool.lives_per_player),
        "leaderboard": pool_service.sort_leaderboard(summaries),
        "weekly_picks": pool_service.weekly_picks(picks, names, team_names, closed_gameweek),
        "manage_members": manage_members,
        "win_pct_rows": win_pct_rows,
    })


@router.post("/{pool_id}/picks")
async def create_pick(
    pool_id: str,
    team_id: Optional[str] = Form(None),
    gameweek: Optional[str] = Form(None),
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    data = parse_input(
        SubmitPickInput,
        {"pool_id": pool_id, "team_id": team_id, "gameweek": gameweek},
        "Invalid pick submission"
    )

    with unexpected_errors(logger, "submit_pick_unexpected_error", "Unexpected error when saving pick. Please try again."):
        message = submit_pick(db, current_user, data.pool_id, data.team_id, data.gameweek)

    return {"success": True, "message": message}


@router.post("/{pool_id}/members/{membership_id}/remove")
async def remove_pool_member(
    pool_id: str,
    membership_id: str,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    data = parse_input(
        RemoveMemberInput,
        {"pool_id": pool_id, "membership_id": membership_id},
        "Invalid request"
    )

    with unexpected_errors(logger, "remove_member_unexpected_error", "Unexpected error removing member. Please try again."):
        pool_service.remove_member(db, current_user, data.pool_id, data.membership_id)

    return {"success": True}


@router.get("/{pool_id}/share")
async def share_pool(
    pool_id: str,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    return {"success": True, "message": pool_service.share_message(db, pool_id)}
