"""Fetch EPL odds from The Odds API and store a snapshot of bookmaker prices.

Usage: python scripts/fetch_odds.py [--gameweek N]
Exits 0 on success (including when no odds rows were parsed), 1 on any fatal error.
"""
import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlmodel import Session

from survivor.config import require_env
from survivor.database import create_db_and_tables, engine
from survivor.logging import get_logger
from survivor.services.odds import OddsFeedClient, ingest_odds
from survivor.services.schedule import get_gameweek_context, odds_gameweek

logger = get_logger("fetch_odds")


def run(gameweek=None) -> int:
    try:
        api_key = require_env("ODDS_API_KEY")
        create_db_and_tables()

        with Session(engine) as db:
            if gameweek is None:
                gameweek = odds_gameweek(get_gameweek_context(db))
            print(f"Fetching odds for gameweek {gameweek}", file=sys.stderr)

            summary = ingest_odds(db, OddsFeedClient(api_key=api_key), gameweek)
    except Exception:
        logger.exception("fetch_odds_fatal")
        return 1

    if summary.rows == 0:
        print("No odds rows parsed; skipping insert.", file=sys.stderr)
    else:
        print(f"Inserted snapshot {summary.snapshot_id} and {summary.rows} odds rows.", file=sys.stderr)
    print(f"Odds API usage: {summary.usage}", file=sys.stderr)
    return 0


def main():
    parser = argparse.ArgumentParser(description="Fetch EPL head-to-head odds into a new snapshot")
    parser.add_argument("--gameweek", type=int, help="Gameweek to file the snapshot under (default: last closed)")
    args = parser.parse_args()

    sys.exit(run(args.gameweek))


if __name__ == "__main__":
    main()
