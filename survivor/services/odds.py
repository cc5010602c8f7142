"""
Bookmaker odds: fetching, normalizing and reading back snapshots.

Prices are decimal odds. The implied probability of a price is 1/price and
a bookmaker's margin (overround) is how far the three implied
probabilities of a match sum past 1.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

import requests
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ..config import (
    BOOKMAKERS,
    ODDS_API_BASE_URL,
    ODDS_DATE_FORMAT,
    ODDS_FORMAT,
    ODDS_MARKETS,
    ODDS_REGIONS,
    ODDS_WINDOW_DAYS,
    REQUEST_TIMEOUT_SECONDS,
    SPORT_KEY,
)
from ..errors import FeedError, store_error
from ..logging import get_logger
from ..models import GameOdds, OddsSnapshot
from ..timeutils import parse_utc, to_naive_utc, utcnow

logger = get_logger(__name__)

USAGE_HEADERS = {
    "remaining": "x-requests-remaining",
    "used": "x-requests-used",
    "cost": "x-requests-last",
}


@dataclass
class FeedResponse:
    events: List[Dict[str, Any]]
    usage: Dict[str, Optional[str]] = field(default_factory=dict)


@dataclass
class IngestSummary:
    snapshot_id: Optional[int]
    events: int
    rows: int
    usage: Dict[str, Optional[str]] = field(default_factory=dict)


class OddsFeedClient:
    """Head-to-head EPL prices from The Odds API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = ODDS_API_BASE_URL,
        bookmakers: Optional[List[str]] = None,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.bookmakers = bookmakers or list(BOOKMAKERS)
        self.session = session or requests.Session()

    def fetch_events(self) -> FeedResponse:
        url = f"{self.base_url}/sports/{SPORT_KEY}/odds"
        params = {
            "apiKey": self.api_key,
            "regions": ODDS_REGIONS,
            "markets": ODDS_MARKETS,
            "oddsFormat": ODDS_FORMAT,
            "dateFormat": ODDS_DATE_FORMAT,
            "bookmakers": ",".join(self.bookmakers),
        }
        try:
            response = self.session.get(url, params=params, timeout=REQUEST_TIMEOUT_SECONDS)
        except requests.RequestException as exc:
            raise FeedError(f"Odds API request failed: {exc}") from exc

        if not response.ok:
            raise FeedError(f"Odds API request failed ({response.status_code}): {response.text}")

        usage = {name: response.headers.get(header) for name, header in USAGE_HEADERS.items()}
        events = response.json()
        return FeedResponse(events=events if isinstance(events, list) else [], usage=usage)


def implied_probability(price: Optional[float]) -> Optional[float]:
    if not price or price <= 1:
        return None
    return 1 / price


def overround(
    implied_home: Optional[float],
    implied_draw: Optional[float],
    implied_away: Optional[float],
) -> Optional[float]:
    """Sum of implied probabilities minus one; missing sides count as zero."""
    values = (implied_home, implied_draw, implied_away)
    if all(value is None for value in values):
        return None
    return sum(value or 0 for value in values) - 1


def normalize_event(event: Dict[str, Any], bookmakers: Iterable[str] = BOOKMAKERS) -> List[Dict[str, Any]]:
    """One row per allowed bookmaker quoting the event's h2h market."""
    if not event.get("id") or not event.get("commence_time"):
        return []

    allowed = set(bookmakers)
    home_team = event.get("home_team")
    away_team = event.get("away_team")
    rows = []

    for bookmaker in event.get("bookmakers") or []:
        if bookmaker.get("key") not in allowed:
            continue

        market = next(
            (m for m in bookmaker.get("markets") or [] if m.get("key") == "h2h"),
            None
        )
        if not market or not market.get("outcomes"):
            continue

        prices: Dict[str, Optional[float]] = {"home": None, "draw": None, "away": None}
        for outcome in market["outcomes"]:
            name = outcome.get("name")
            if name == home_team:
                prices["home"] = outcome.get("price")
            elif name == away_team:
                prices["away"] = outcome.get("price")
            else:
                prices["draw"] = outcome.get("price")

        implied_home = implied_probability(prices["home"])
        implied_draw = implied_probability(prices["draw"])
        implied_away = implied_probability(prices["away"])

        rows.append({
            "event_id": event.get("id"),
            "commence_time": parse_utc(event.get("commence_time")),
            "home_team": home_team,
            "away_team": away_team,
            "bookmaker": bookmaker["key"],
            "last_update": parse_utc(bookmaker.get("last_update")),
            "home_price_decimal": prices["home"],
            "draw_price_decimal": prices["draw"],
            "away_price_decimal": prices["away"],
            "implied_home": implied_home,
            "implied_draw": implied_draw,
            "implied_away": implied_away,
            "margin": overround(implied_home, implied_draw, implied_away),
        })

    return rows


def upsert_game_odds(db: Session, snapshot_id: int, rows: List[Dict[str, Any]]) -> int:
    """Write rows for a snapshot keyed by (event_id, bookmaker); re-runs overwrite."""
    existing = {
        (odds.event_id, odds.bookmaker): odds
        for odds in db.exec(select(GameOdds).where(GameOdds.snapshot_id == snapshot_id)).all()
    }

    for row in rows:
        odds = existing.get((row["event_id"], row["bookmaker"]))
        if odds is None:
            odds = GameOdds(snapshot_id=snapshot_id, **row)
            existing[(row["event_id"], row["bookmaker"])] = odds
        else:
            for key, value in row.items():
                setattr(odds, key, value)
        db.add(odds)

    db.commit()
    return len(rows)


def ingest_odds(
    db: Session,
    client: OddsFeedClient,
    gameweek: int,
    now: Optional[datetime] = None,
) -> IngestSummary:
    """
    Take one odds snapshot for a gameweek.

    Feed failures raise before anything is written. The snapshot row is
    committed on its own, so a failure while writing the odds rows leaves
    an empty snapshot behind.
    """
    feed = client.fetch_events()
    logger.info("odds_events_fetched", gameweek=gameweek, events=len(feed.events))

    rows = []
    for event in feed.events:
        rows.extend(normalize_event(event, client.bookmakers))

    if not rows:
        logger.warning("odds_rows_empty", gameweek=gameweek, events=len(feed.events))
        return IngestSummary(snapshot_id=None, events=len(feed.events), rows=0, usage=feed.usage)

    taken_at = to_naive_utc(now) if now else utcnow()
    snapshot = OddsSnapshot(
        gameweek=gameweek,
        taken_at=taken_at,
        window_start=taken_at,
        window_end=taken_at + timedelta(days=ODDS_WINDOW_DAYS),
    )
    try:
        db.add(snapshot)
        db.commit()
        db.refresh(snapshot)
    except SQLAlchemyError as exc:
        db.rollback()
        raise store_error(logger, "odds_snapshot_insert_failed", exc, "Unable to insert snapshot") from exc

    try:
        written = upsert_game_odds(db, snapshot.id, rows)
    except SQLAlchemyError as exc:
        db.rollback()
        raise store_error(logger, "game_odds_upsert_failed", exc, "Unable to insert odds rows") from exc

    logger.info("odds_snapshot_saved", snapshot_id=snapshot.id, rows=written, **feed.usage)
    return IngestSummary(snapshot_id=snapshot.id, events=len(feed.events), rows=written, usage=feed.usage)


def latest_snapshot_for_gameweek(db: Session, gameweek: int) -> Optional[OddsSnapshot]:
    statement = (
        select(OddsSnapshot)
        .where(OddsSnapshot.gameweek == gameweek)
        .order_by(OddsSnapshot.taken_at.desc(), OddsSnapshot.id.desc())
        .limit(1)
    )
    return db.exec(statement).first()


def _best(prices: Iterable[Optional[float]]) -> Optional[float]:
    values = [price for price in prices if price is not None]
    return max(values) if values else None


def latest_best_odds(db: Session, gameweek: int) -> List[Dict[str, Any]]:
    """
    Best price per side for each event in the gameweek's latest snapshot.

    Probabilities come from the best prices, rescaled to sum to one.
    """
    snapshot = latest_snapshot_for_gameweek(db, gameweek)
    if not snapshot:
        return []

    odds_rows = db.exec(select(GameOdds).where(GameOdds.snapshot_id == snapshot.id)).all()
    by_event: Dict[str, List[GameOdds]] = {}
    for odds in odds_rows:
        by_event.setdefault(odds.event_id, []).append(odds)

    results = []
    for event_id, quotes in by_event.items():
        first = quotes[0]
        best_home = _best(q.home_price_decimal for q in quotes)
        best_draw = _best(q.draw_price_decimal for q in quotes)
        best_away = _best(q.away_price_decimal for q in quotes)

        implied = [implied_probability(p) for p in (best_home, best_draw, best_away)]
        total = sum(value or 0 for value in implied)
        p_home, p_draw, p_away = (
            (value / total if value is not None and total > 0 else None) for value in implied
        )

        results.append({
            "gameweek": gameweek,
            "event_id": event_id,
            "commence_time": first.commence_time,
            "home_team": first.home_team,
            "away_team": first.away_team,
            "best_home": best_home,
            "best_draw": best_draw,
            "best_away": best_away,
            "p_home": p_home,
            "p_draw": p_draw,
            "p_away": p_away,
        })

    return sorted(results, key=lambda row: row["commence_time"])


def team_win_pct(db: Session, gameweek: int) -> List[Dict[str, Any]]:
    """Each team's chance of winning its fixture, highest first."""
    rows = []
    for event in latest_best_odds(db, gameweek):
        for side, team, opponent, price, win_pct in (
            ("H", event["home_team"], event["away_team"], event["best_home"], event["p_home"]),
            ("A", event["away_team"], event["home_team"], event["best_away"], event["p_away"]),
        ):
            rows.append({
                "gameweek": gameweek,
                "event_id": event["event_id"],
                "commence_time": event["commence_time"],
                "team": team,
                "opponent": opponent,
                "side": side,
                "price_decimal": price,
                "win_pct": win_pct,
            })

    return sorted(rows, key=lambda row: row["win_pct"] or 0, reverse=True)
