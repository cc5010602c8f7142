"""Seed the 20 Premier League clubs for the 2025/26 season."""
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlmodel import Session, select

from survivor.database import create_db_and_tables, engine
from survivor.models import Team

TEAMS = [
    "Arsenal",
    "Aston Villa",
    "Bournemouth",
    "Brentford",
    "Brighton",
    "Burnley",
    "Chelsea",
    "Crystal Palace",
    "Everton",
    "Fulham",
    "Leeds",
    "Liverpool",
    "Man City",
    "Man Utd",
    "Newcastle",
    "Nott'm Forest",
    "Sunderland",
    "Spurs",
    "West Ham",
    "Wolves",
]


def seed_teams(session: Session) -> int:
    created = 0
    for name in TEAMS:
        if session.exec(select(Team).where(Team.name == name)).first():
            continue
        session.add(Team(name=name))
        created += 1
    session.commit()
    return created


if __name__ == "__main__":
    create_db_and_tables()
    with Session(engine) as session:
        print(f"Created {seed_teams(session)} teams.")
