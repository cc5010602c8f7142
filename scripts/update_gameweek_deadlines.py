"""Fetch the EPL fixture list and upsert one deadline row per gameweek.

Usage: python scripts/update_gameweek_deadlines.py [--url URL]
"""
import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlmodel import Session

from survivor.config import FIXTURE_URL
from survivor.database import create_db_and_tables, engine
from survivor.logging import get_logger
from survivor.services.fixtures import FixtureFeedClient, build_deadline_rows, upsert_deadlines

logger = get_logger("update_gameweek_deadlines")


def run(url: str = FIXTURE_URL) -> int:
    try:
        fixtures = FixtureFeedClient(url).fetch_fixtures()
        rows = build_deadline_rows(fixtures)

        if not rows:
            print("No fixtures found; nothing to upsert.", file=sys.stderr)
            return 0

        create_db_and_tables()
        with Session(engine) as db:
            count = upsert_deadlines(db, rows)
    except Exception:
        logger.exception("update_gameweek_deadlines_fatal")
        return 1

    print(f"Upserted {count} gameweek deadline rows.", file=sys.stderr)
    return 0


def main():
    parser = argparse.ArgumentParser(description="Derive gameweek pick deadlines from the fixture feed")
    parser.add_argument("--url", default=FIXTURE_URL, help="Fixture feed URL")
    args = parser.parse_args()

    sys.exit(run(args.url))


if __name__ == "__main__":
    main()
