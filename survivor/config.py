import os
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent

# Database
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR}/survivor.db")

# Sessions
SESSION_COOKIE_NAME = "survivor_session"
SESSION_EXPIRE_DAYS = 30

# Public URL used in share messages
APP_URL = os.getenv("APP_URL", "https://pl-survivor-pool.vercel.app")

# Pools
POOL_CODE_LENGTH = 6
POOL_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
POOL_ID_LENGTH = 36
MIN_LIVES = 1
MAX_LIVES = 3
DEFAULT_GAMEWEEK = int(os.getenv("DEFAULT_GAMEWEEK", "1"))

# Odds feed (The Odds API)
ODDS_API_KEY = os.getenv("ODDS_API_KEY")
ODDS_API_BASE_URL = os.getenv("ODDS_API_BASE_URL", "https://api.the-odds-api.com/v4")
SPORT_KEY = "soccer_epl"
ODDS_REGIONS = "uk"
ODDS_MARKETS = "h2h"
ODDS_FORMAT = "decimal"
ODDS_DATE_FORMAT = "iso"
BOOKMAKERS = ["bet365", "paddypower", "williamhill_uk", "ladbrokes", "coral", "betfair"]
ODDS_WINDOW_DAYS = 7

# Fixture feed
FIXTURE_URL = os.getenv("FIXTURE_URL", "https://fixturedownload.com/feed/json/epl-2025")

# Pick deadline is one hour before the first kickoff, odds refresh one hour after
DEADLINE_OFFSET = timedelta(hours=1)

REQUEST_TIMEOUT_SECONDS = 30

# Templates
TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


def require_env(name: str) -> str:
    """Return an environment variable or fail loudly when it is missing."""
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value
