from datetime import datetime, timedelta, timezone

from conftest import add_deadline
from survivor.config import DEFAULT_GAMEWEEK
from survivor.models import GameweekDeadline
from survivor.services.schedule import (
    GameweekContext,
    format_deadline_countdown,
    get_gameweek_context,
    odds_gameweek,
    pick_gameweek,
    resolve_odds_status,
    season_label,
)

NOW = datetime(2025, 10, 1, 12, 0)


def test_pick_and_odds_gameweeks_straddle_now(session):
    add_deadline(session, 6, datetime(2025, 9, 27, 11, 30))
    add_deadline(session, 7, datetime(2025, 10, 3, 19, 0))

    context = get_gameweek_context(session, now=NOW)

    assert context.upcoming.gameweek == 7
    assert context.last_closed.gameweek == 6
    assert pick_gameweek(context) == 7
    assert odds_gameweek(context) == 6


def test_aware_now_is_compared_as_utc(session):
    add_deadline(session, 7, datetime(2025, 10, 3, 19, 0))

    # 19:30 in UTC+2 is 17:30 UTC, still before the 18:00 deadline
    context = get_gameweek_context(session, now=datetime(2025, 10, 3, 19, 30, tzinfo=timezone(timedelta(hours=2))))

    assert context.upcoming.gameweek == 7
    assert context.last_closed is None


def test_season_over_uses_last_closed_for_both(session):
    add_deadline(session, 38, datetime(2026, 5, 24, 15, 0))

    context = get_gameweek_context(session, now=datetime(2026, 6, 1))

    assert context.upcoming is None
    assert pick_gameweek(context) == 38
    assert odds_gameweek(context) == 38


def test_before_season_odds_follow_pick_gameweek(session):
    add_deadline(session, 1, datetime(2025, 8, 15, 19, 0))

    context = get_gameweek_context(session, now=datetime(2025, 7, 1))

    assert pick_gameweek(context) == 1
    assert odds_gameweek(context) == 1


def test_empty_table_falls_back_to_default(session):
    context = get_gameweek_context(session, now=NOW)

    assert context == GameweekContext()
    assert pick_gameweek(context) == DEFAULT_GAMEWEEK
    assert odds_gameweek(context) == DEFAULT_GAMEWEEK


def test_deadline_rows_are_offset_by_an_hour(session):
    row = add_deadline(session, 7, datetime(2025, 10, 3, 19, 0))

    assert row.pick_deadline == datetime(2025, 10, 3, 18, 0)
    assert row.odds_refresh_at == datetime(2025, 10, 3, 20, 0)


def _deadline_row():
    return GameweekDeadline(
        gameweek=7,
        first_kickoff=datetime(2025, 10, 3, 19, 0),
        pick_deadline=datetime(2025, 10, 3, 18, 0),
        odds_refresh_at=datetime(2025, 10, 3, 20, 0),
    )


def test_odds_updating_between_deadline_and_refresh():
    status = resolve_odds_status(_deadline_row(), [], None, now=datetime(2025, 10, 3, 18, 30))

    assert status.is_updating is True
    assert status.deadline == datetime(2025, 10, 3, 18, 0)
    assert status.refresh_at == datetime(2025, 10, 3, 20, 0)


def test_odds_not_updating_once_fresh_snapshot_exists():
    status = resolve_odds_status(
        _deadline_row(), [], datetime(2025, 10, 3, 18, 5), now=datetime(2025, 10, 3, 18, 30)
    )

    assert status.is_updating is False
    assert status.snapshot_taken_at == datetime(2025, 10, 3, 18, 5)


def test_stale_snapshot_still_updating():
    status = resolve_odds_status(
        _deadline_row(), [], datetime(2025, 10, 2, 9, 0), now=datetime(2025, 10, 3, 19, 59)
    )

    assert status.is_updating is True


def test_odds_not_updating_outside_window():
    before = resolve_odds_status(_deadline_row(), [], None, now=datetime(2025, 10, 3, 17, 59))
    after = resolve_odds_status(_deadline_row(), [], None, now=datetime(2025, 10, 3, 20, 0))

    assert before.is_updating is False
    assert after.is_updating is False


def test_odds_status_derived_from_kickoffs_without_deadline():
    kickoffs = [datetime(2025, 10, 4, 14, 0), datetime(2025, 10, 3, 19, 0)]

    status = resolve_odds_status(None, kickoffs, None, now=datetime(2025, 10, 3, 18, 30))

    assert status.deadline == datetime(2025, 10, 3, 18, 0)
    assert status.refresh_at == datetime(2025, 10, 3, 20, 0)
    assert status.is_updating is True


def test_odds_status_without_any_timing():
    status = resolve_odds_status(None, [], None, now=NOW)

    assert status.is_updating is False
    assert status.deadline is None
    assert status.refresh_at is None


def test_deadline_countdown():
    deadline = datetime(2025, 10, 3, 18, 0)

    assert format_deadline_countdown(deadline, now=datetime(2025, 10, 1, 15, 30)) == "2d 2h 30m"
    assert format_deadline_countdown(deadline, now=deadline) == "Deadline passed"


def test_season_label():
    assert season_label(datetime(2025, 8, 15, 19, 0)) == "2025/26 Premier League"
    assert season_label(None) == "Premier League Survivor"
