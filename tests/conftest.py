from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from main import app
from survivor.database import get_session
from survivor.dependencies import get_current_user, require_admin, require_user
from survivor.models import GameweekDeadline, Team, User
from survivor.services.fixtures import build_deadline_rows

# Create in-memory database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TEAM_NAMES = [
    "Arsenal", "Aston Villa", "Bournemouth", "Brentford", "Brighton",
    "Burnley", "Chelsea", "Crystal Palace", "Everton", "Fulham",
    "Leeds", "Liverpool", "Man City", "Man Utd", "Newcastle",
    "Nott'm Forest", "Sunderland", "Spurs", "West Ham", "Wolves",
]


@pytest.fixture(name="session")
def session_fixture():
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


def create_user(session: Session, email: str = "test@example.com", display_name: str = "Test User", is_admin: bool = False) -> User:
    user = User(
        email=email,
        display_name=display_name,
        password_hash="hashed_secret",
        is_admin=is_admin
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture(name="owner")
def owner_fixture(session: Session) -> User:
    return create_user(session, "owner@example.com", "Olivia")


@pytest.fixture(name="player")
def player_fixture(session: Session) -> User:
    return create_user(session, "player@example.com", "Pete")


@pytest.fixture(name="teams")
def teams_fixture(session: Session):
    """The 20 clubs with ids 1-20 in alphabetical order (Fulham is 10)."""
    teams = [Team(id=index, name=name) for index, name in enumerate(TEAM_NAMES, start=1)]
    session.add_all(teams)
    session.commit()
    return teams


@pytest.fixture(name="login_as")
def login_as_fixture():
    """Make the app treat the given user as the logged-in caller."""
    def login(user: User):
        app.dependency_overrides[require_user] = lambda: user
        app.dependency_overrides[get_current_user] = lambda: user
        if user.is_admin:
            app.dependency_overrides[require_admin] = lambda: user
    return login


def add_deadline(session: Session, gameweek: int, first_kickoff: datetime) -> GameweekDeadline:
    row = build_deadline_rows([{"RoundNumber": gameweek, "DateUtc": first_kickoff.isoformat()}])[0]
    deadline = GameweekDeadline(**row)
    session.add(deadline)
    session.commit()
    return deadline


class FakeResponse:
    """Stands in for a requests.Response from an upstream feed."""

    def __init__(self, payload, status_code=200, headers=None):
        self.payload = payload
        self.status_code = status_code
        self.ok = status_code < 400
        self.text = "error" if not self.ok else ""
        self.headers = headers or {}

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error:
            raise self.error
        return self.response
