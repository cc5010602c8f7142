import pytest
from sqlmodel import select

from conftest import create_user
from survivor.config import POOL_CODE_ALPHABET, POOL_CODE_LENGTH
from survivor.errors import NotFound
from survivor.models import Pick, Pool, PoolMember
from survivor.services import pools as pool_service
from survivor.services.pools import PoolRole
from survivor.timeutils import utcnow


def test_generated_code_shape():
    for _ in range(200):
        code = pool_service.generate_pool_code()
        assert len(code) == POOL_CODE_LENGTH
        assert all(char in POOL_CODE_ALPHABET for char in code)


def test_create_pool_adds_owner_membership(client, session, owner, login_as):
    login_as(owner)

    response = client.post("/pool/create", data={"name": "Test League", "lives": "2"})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["lives_per_player"] == 2
    assert len(data["pool_code"]) == POOL_CODE_LENGTH

    pool = session.get(Pool, data["pool_id"])
    assert pool.name == "Test League"
    assert pool.created_by == owner.id

    membership = session.exec(
        select(PoolMember).where(PoolMember.pool_id == pool.id, PoolMember.user_id == owner.id)
    ).one()
    assert membership.status == "alive"
    assert membership.lives_remaining == 2


def test_create_pool_validation_messages(client, owner, login_as):
    login_as(owner)

    response = client.post("/pool/create", data={"name": "ab", "lives": "2"})
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Pool name must be at least 3 characters long"}

    response = client.post("/pool/create", data={"name": "x" * 101, "lives": "1"})
    assert response.json()["error"] == "Pool name is too long"

    response = client.post("/pool/create", data={"name": "Valid Name", "lives": "4"})
    assert response.json()["error"] == "Lives must be between 1 and 3"

    response = client.post("/pool/create", data={"name": "Valid Name", "lives": "two"})
    assert response.json()["error"] == "Lives must be a whole number"


def test_join_pool_by_code_is_case_insensitive(client, session, owner, player, login_as):
    created = pool_service.create_pool(session, owner, "Office League", 3)
    login_as(player)

    response = client.post("/pool/join", data={"pool_code": created["pool_code"].lower()})

    assert response.status_code == 200
    assert response.json() == {"success": True, "pool_id": created["pool_id"], "pool_code": created["pool_code"]}

    membership = pool_service.get_membership(session, created["pool_id"], player.id)
    assert membership.lives_remaining == 3
    assert membership.status == "alive"


def test_join_pool_by_id(client, session, owner, player, login_as):
    created = pool_service.create_pool(session, owner, "Office League", 1)
    login_as(player)

    response = client.post("/pool/join", data={"pool_code": f"  {created['pool_id']} "})

    assert response.status_code == 200
    assert response.json()["pool_id"] == created["pool_id"]


def test_join_pool_twice_is_rejected(client, session, owner, player, login_as):
    created = pool_service.create_pool(session, owner, "Office League", 1)
    login_as(player)

    first = client.post("/pool/join", data={"pool_code": created["pool_code"]})
    second = client.post("/pool/join", data={"pool_code": created["pool_code"]})

    assert first.json()["success"] is True
    assert second.status_code == 400
    assert second.json()["error"] == "You are already part of this pool."
    memberships = session.exec(
        select(PoolMember).where(PoolMember.pool_id == created["pool_id"], PoolMember.user_id == player.id)
    ).all()
    assert len(memberships) == 1


def test_join_unknown_code(client, player, login_as):
    login_as(player)

    response = client.post("/pool/join", data={"pool_code": "ZZZZZZ"})

    assert response.status_code == 404
    assert response.json()["error"] == "We could not find a pool with that code."


def test_join_rejects_malformed_code(client, player, login_as):
    login_as(player)

    response = client.post("/pool/join", data={"pool_code": "ABC"})

    assert response.status_code == 400
    assert response.json()["error"] == "Enter a 6-character code or pool ID"


def test_owner_removes_member(client, session, owner, player, login_as):
    created = pool_service.create_pool(session, owner, "Office League", 1)
    pool_service.join_pool(session, player, created["pool_code"])
    membership = pool_service.get_membership(session, created["pool_id"], player.id)
    login_as(owner)

    response = client.post(f"/pool/{created['pool_id']}/members/{membership.id}/remove")

    assert response.json() == {"success": True}
    assert pool_service.get_membership(session, created["pool_id"], player.id) is None


def test_owner_cannot_be_removed(client, session, owner, login_as):
    created = pool_service.create_pool(session, owner, "Office League", 1)
    own_membership = pool_service.get_membership(session, created["pool_id"], owner.id)
    login_as(owner)

    response = client.post(f"/pool/{created['pool_id']}/members/{own_membership.id}/remove")

    assert response.status_code == 400
    assert response.json()["error"] == "You cannot remove the pool owner."
    assert pool_service.get_membership(session, created["pool_id"], owner.id) is not None


def test_only_owner_can_remove(client, session, owner, player, login_as):
    created = pool_service.create_pool(session, owner, "Office League", 1)
    pool_service.join_pool(session, player, created["pool_code"])
    own_membership = pool_service.get_membership(session, created["pool_id"], owner.id)
    login_as(player)

    response = client.post(f"/pool/{created['pool_id']}/members/{own_membership.id}/remove")

    assert response.status_code == 403
    assert response.json()["error"] == "Only the pool owner can remove members."


def test_remove_member_from_another_pool_is_not_found(session, owner, player):
    first = pool_service.create_pool(session, owner, "First League", 1)
    second = pool_service.create_pool(session, player, "Second League", 1)
    other_membership = pool_service.get_membership(session, second["pool_id"], player.id)

    with pytest.raises(NotFound, match="Member not found."):
        pool_service.remove_member(session, owner, first["pool_id"], other_membership.id)


def test_share_message(client, session, owner, login_as):
    created = pool_service.create_pool(session, owner, "Office League", 1)
    login_as(owner)

    response = client.get(f"/pool/{created['pool_id']}/share")

    message = response.json()["message"]
    assert message.startswith("Join our PL Survivor Pool: Office League\n")
    assert f"Pool Code: {created['pool_code']}" in message
    assert message.endswith("/pool and use the code to enter.")


def test_pool_roles():
    assert pool_service.normalize_pool_role("admin") == PoolRole.ADMIN
    assert pool_service.normalize_pool_role("captain") is None
    assert pool_service.format_pool_role(PoolRole.OWNER) == "Owner"
    assert pool_service.format_pool_role(None) == "--"
    assert pool_service.is_admin(PoolRole.OWNER)
    assert not pool_service.is_owner(PoolRole.ADMIN)


def test_leaderboard_puts_alive_players_first(session, owner, player, teams):
    third = create_user(session, "third@example.com", "Tess")
    created = pool_service.create_pool(session, owner, "Office League", 3)
    pool_id = created["pool_id"]
    pool_service.join_pool(session, player, created["pool_code"])
    pool_service.join_pool(session, third, created["pool_code"])

    members = {m.user_id: m for m in session.exec(select(PoolMember).where(PoolMember.pool_id == pool_id)).all()}
    members[owner.id].lives_remaining = 1
    members[third.id].status = "eliminated"
    members[third.id].lives_remaining = 0
    session.add_all(members.values())
    session.add_all([
        Pick(pool_id=pool_id, user_id=owner.id, gameweek=1, team_id=1, result="won"),
        Pick(pool_id=pool_id, user_id=owner.id, gameweek=2, team_id=2, result="lost"),
        Pick(pool_id=pool_id, user_id=player.id, gameweek=1, team_id=1, result="win"),
    ])
    session.commit()

    picks = session.exec(select(Pick).where(Pick.pool_id == pool_id)).all()
    names = {owner.id: "Olivia", player.id: "Pete", third.id: "Tess"}
    team_names = {team.id: team.name for team in teams}
    summaries = pool_service.member_summaries(members.values(), picks, names, team_names)
    board = pool_service.sort_leaderboard(summaries)

    assert [entry["name"] for entry in board] == ["Pete", "Olivia", "Tess"]
    olivia = next(entry for entry in board if entry["name"] == "Olivia")
    assert olivia["rounds_survived"] == 1
    assert olivia["teams_used"] == ["Arsenal", "Aston Villa"]
    assert olivia["teams_available_count"] == 18
    assert board[-1]["status"] == "ELIMINATED"


def test_weekly_picks_only_shows_closed_gameweeks(session, owner, teams):
    created = pool_service.create_pool(session, owner, "Office League", 1)
    picks = [
        Pick(pool_id=created["pool_id"], user_id=owner.id, gameweek=week, team_id=week)
        for week in range(1, 6)
    ]

    weeks = pool_service.weekly_picks(picks, {owner.id: "Olivia"}, {t.id: t.name for t in teams}, closed_gameweek=4)

    assert [week["gameweek"] for week in weeks] == [4, 3, 2]
    assert weeks[0]["picks"] == [{"player": "Olivia", "team": "Brentford", "result": "PENDING"}]


def test_lives_display():
    assert pool_service.lives_display(2, 3) == "2/3"
    assert pool_service.lives_display(1, None) == "1"


def test_join_by_unknown_id_is_not_found(client, session, owner, player, login_as):
    pool_service.create_pool(session, owner, "Office League", 1)
    login_as(player)

    response = client.post("/pool/join", data={"pool_code": "00000000-0000-0000-0000-000000000000"})

    assert response.status_code == 404
    assert response.json()["error"] == "We could not find a pool with that code."


def test_timestamps_round_trip_as_naive_utc(session, owner):
    before = utcnow()
    created = pool_service.create_pool(session, owner, "Office League", 1)

    pool = session.get(Pool, created["pool_id"])
    session.refresh(pool)
    membership = pool_service.get_membership(session, pool.id, owner.id)

    assert pool.created_at.tzinfo is None
    assert before <= pool.created_at <= utcnow()
    assert membership.joined_at.tzinfo is None
