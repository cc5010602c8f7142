from datetime import datetime

from sqlmodel import select

from conftest import add_deadline
from survivor.models import Pick
from survivor.services import pools as pool_service


def test_season_walkthrough(client, session, owner, player, teams, login_as):
    add_deadline(session, 6, datetime(2025, 9, 27, 11, 30))
    add_deadline(session, 7, datetime(2099, 10, 3, 19, 0))

    login_as(owner)
    created = client.post("/pool/create", data={"name": "Test League", "lives": "2"}).json()
    assert created["success"] is True
    owner_membership = pool_service.get_membership(session, created["pool_id"], owner.id)
    assert owner_membership.status == "alive"
    assert owner_membership.lives_remaining == 2

    login_as(player)
    joined = client.post("/pool/join", data={"pool_code": created["pool_code"]}).json()
    assert joined["pool_id"] == created["pool_id"]
    assert pool_service.get_membership(session, created["pool_id"], player.id).lives_remaining == 2

    url = f"/pool/{created['pool_id']}/picks"
    first = client.post(url, data={"team_id": "10", "gameweek": "7"})
    assert first.json() == {"success": True, "message": "Fulham locked in for GW7."}

    second = client.post(url, data={"team_id": "10", "gameweek": "8"})
    assert second.json() == {
        "success": False,
        "error": "You have already used this team earlier in the season."
    }

    picks = session.exec(select(Pick).where(Pick.user_id == player.id)).all()
    assert [(p.gameweek, p.team_id) for p in picks] == [(7, 10)]

    page = client.get(f"/pool/{created['pool_id']}")
    assert page.status_code == 200
    assert "Test League" in page.text
    assert "Fulham" in page.text

    dashboard = client.get("/dashboard")
    assert dashboard.status_code == 200
    assert "Test League" in dashboard.text


def test_pool_page_hidden_from_non_members(client, session, owner, player, login_as):
    created = pool_service.create_pool(session, owner, "Private League", 1)
    login_as(player)

    assert client.get(f"/pool/{created['pool_id']}").status_code == 403
    assert client.get("/pool/00000000-0000-0000-0000-000000000000").status_code == 404
