from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlmodel import Session, select

from .. import config
from ..config import TEMPLATES_DIR
from ..database import get_session
from ..dependencies import require_admin
from ..errors import InvalidInput, unexpected_errors
from ..logging import get_logger
from ..models import Team, User
from ..services.odds import OddsFeedClient, ingest_odds
from ..services.results import RESULT_CODES, results_for_gameweek, save_results
from ..services.schedule import get_gameweek_context, odds_gameweek, pick_gameweek

router = APIRouter(prefix="/admin", tags=["admin"])
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
logger = get_logger(__name__)


def get_odds_client() -> OddsFeedClient:
    if not config.ODDS_API_KEY:
        raise HTTPException(status_code=500, detail="Missing environment variable: ODDS_API_KEY")
    return OddsFeedClient(api_key=config.ODDS_API_KEY)


def _parse_gameweek(value: Optional[str]) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        gameweek = int(value)
    except ValueError:
        raise InvalidInput("Invalid gameweek parameter")
    if gameweek <= 0:
        raise InvalidInput("Invalid gameweek parameter")
    return gameweek


@router.get("/results", response_class=HTMLResponse)
async def results_page(
    request: Request,
    gameweek: Optional[str] = None,
    saved: Optional[int] = None,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_session)
):
    week = _parse_gameweek(gameweek) or pick_gameweek(get_gameweek_context(db))
    teams = db.exec(select(Team).order_by(Team.name)).all()
    entered = {result.team_id: result.result for result in results_for_gameweek(db, week)}

    return templates.TemplateResponse(request, "admin/results.html", {
        "current_user": current_user,
        "gameweek": week,
        "teams": teams,
        "entered": entered,
        "result_codes": RESULT_CODES,
        "saved": saved,
    })


@router.post("/results")
async def submit_results(
    request: Request,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_session)
):
    form = await request.form()
    week = _parse_gameweek(form.get("gameweek"))
    if week is None:
        raise InvalidInput("Invalid gameweek parameter")

    results = {}
    for key, value in form.items():
        if key.startswith("result_") and value:
            try:
                results[int(key[len("result_"):])] = value
            except ValueError:
                raise InvalidInput(f"Invalid team reference: {key}")

    saved = save_results(db, week, results)
    return RedirectResponse(url=f"/admin/results?gameweek={week}&saved={saved}", status_code=303)


@router.post("/odds/fetch")
async def fetch_odds(
    gameweek: Optional[str] = None,
    current_user: User = Depends(require_admin),
    client: OddsFeedClient = Depends(get_odds_client),
    db: Session = Depends(get_session)
):
    """Take an odds snapshot on demand; defaults to the odds gameweek."""
    week = _parse_gameweek(gameweek) or odds_gameweek(get_gameweek_context(db))

    with unexpected_errors(logger, "fetch_odds_unexpected_error", "Unexpected error"):
        summary = ingest_odds(db, client, week)

    return {
        "ok": True,
        "gameweek": week,
        "snapshot": summary.snapshot_id,
        "events": summary.events,
        "rows": summary.rows,
        "usage": summary.usage,
    }
