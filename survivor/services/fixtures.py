"""Gameweek deadlines derived from the season's fixture list."""
from datetime import datetime
from typing import Any, Dict, List, Optional

import pandas as pd
import requests
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ..config import DEADLINE_OFFSET, FIXTURE_URL, REQUEST_TIMEOUT_SECONDS
from ..errors import FeedError, store_error
from ..logging import get_logger
from ..models import GameweekDeadline
from ..timeutils import parse_utc

logger = get_logger(__name__)


class FixtureFeedClient:
    def __init__(self, url: str = FIXTURE_URL, session: Optional[requests.Session] = None):
        self.url = url
        self.session = session or requests.Session()

    def fetch_fixtures(self) -> List[Dict[str, Any]]:
        try:
            response = self.session.get(self.url, timeout=REQUEST_TIMEOUT_SECONDS)
        except requests.RequestException as exc:
            raise FeedError(f"Fixture API failed: {exc}") from exc

        if not response.ok:
            raise FeedError(f"Fixture API failed ({response.status_code}): {response.text}")

        fixtures = response.json()
        return fixtures if isinstance(fixtures, list) else []


def parse_kickoff(value: str) -> datetime:
    try:
        kickoff = parse_utc(value)
    except ValueError as exc:
        raise ValueError(f"Invalid DateUtc value: {value}") from exc
    if kickoff is None:
        raise ValueError(f"Invalid DateUtc value: {value}")
    return kickoff


def build_deadline_rows(fixtures: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Earliest kickoff per round, with the pick deadline and odds refresh around it."""
    records = [
        fixture for fixture in fixtures
        if fixture and fixture.get("RoundNumber") and fixture.get("DateUtc")
    ]
    if not records:
        return []

    frame = pd.DataFrame(records, columns=["RoundNumber", "DateUtc"])
    frame["kickoff"] = pd.to_datetime([parse_kickoff(value) for value in frame["DateUtc"]])
    earliest = frame.groupby("RoundNumber")["kickoff"].min().sort_index()

    rows = []
    for gameweek, kickoff in earliest.items():
        first_kickoff = kickoff.to_pydatetime()
        rows.append({
            "gameweek": int(gameweek),
            "first_kickoff": first_kickoff,
            "pick_deadline": first_kickoff - DEADLINE_OFFSET,
            "odds_refresh_at": first_kickoff + DEADLINE_OFFSET,
        })
    return rows


def upsert_deadlines(db: Session, rows: List[Dict[str, Any]]) -> int:
    """Insert or replace one deadline row per gameweek in a single commit."""
    try:
        for row in rows:
            deadline = db.get(GameweekDeadline, row["gameweek"])
            if deadline is None:
                deadline = GameweekDeadline(**row)
            else:
                deadline.first_kickoff = row["first_kickoff"]
                deadline.pick_deadline = row["pick_deadline"]
                deadline.odds_refresh_at = row["odds_refresh_at"]
            db.add(deadline)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise store_error(
            logger, "gameweek_deadlines_upsert_failed", exc,
            "Failed to upsert gameweek deadlines"
        ) from exc

    logger.info("gameweek_deadlines_upserted", rows=len(rows))
    return len(rows)
