from datetime import timedelta

import pytest
from conftest import (
    TODAY,
    add_picks,
    finish_games,
    make_profile,
    make_slate,
    set_streak,
)
from sqlalchemy.exc import OperationalError

from dailypicks.models import DailyScore, Slate, Streak
from dailypicks.services.finalization import finalize_slate, tally_picks

HOME_WINS = [(3, 1)] * 7


def test_perfect_day_extends_streak(app):
    alice = make_profile()
    set_streak(alice, 6, TODAY - timedelta(days=1))
    slate = make_slate(games=7)
    add_picks(alice, slate, ["home"] * 7)
    finish_games(slate, HOME_WINS)

    result = finalize_slate(slate.id)

    assert result["finalized"] is True
    assert result["message"] == "Slate finalized! 1 users scored."
    assert result["results"] == ["Alice: 7/7 = +370pts (streak: 7)"]
    assert slate.status == Slate.STATUS_FINALIZED
    assert slate.finalized_at is not None

    score = DailyScore.query.filter_by(user_id=alice.id, slate_id=slate.id).one()
    assert score.correct_picks == 7
    assert score.total_points == 370
    assert score.streak_bonus == 100

    streak = Streak.get_for_user(alice.id)
    assert streak.current_streak == 7
    assert streak.longest_streak == 7
    assert streak.last_played_date == TODAY


def test_first_day_three_of_seven(app):
    bob = make_profile("bob@example.com", "Bob")
    slate = make_slate(games=7)
    add_picks(bob, slate, ["home"] * 3 + ["away"] * 4)
    finish_games(slate, HOME_WINS)

    finalize_slate(slate.id)

    score = DailyScore.query.filter_by(user_id=bob.id).one()
    assert (score.correct_picks, score.total_picks) == (3, 7)
    assert score.total_points == 55
    assert Streak.get_for_user(bob.id).current_streak == 1


def test_gap_resets_streak_but_keeps_longest(app):
    alice = make_profile()
    set_streak(alice, 4, TODAY - timedelta(days=3))
    slate = make_slate(games=1)
    add_picks(alice, slate, ["away"])
    finish_games(slate, [(1, 0)])

    finalize_slate(slate.id)

    streak = Streak.get_for_user(alice.id)
    assert streak.current_streak == 1
    assert streak.longest_streak == 4
    assert DailyScore.query.one().total_points == 10


def test_second_finalize_is_a_no_op(app):
    alice = make_profile()
    slate = make_slate(games=2)
    add_picks(alice, slate, ["home", "home"])
    finish_games(slate, [(2, 1), (2, 1)])
    finalize_slate(slate.id)

    result = finalize_slate(slate.id)

    assert result["message"] == "Slate already finalized"
    assert result["finalized"] is False
    assert DailyScore.query.count() == 1
    assert Streak.get_for_user(alice.id).current_streak == 1


def test_refuses_until_every_game_is_final(app):
    slate = make_slate(games=3)
    add_picks(make_profile(), slate, ["home"] * 3)
    finish_games(slate, [(1, 0), (1, 0)], count=2)

    result = finalize_slate(slate.id)

    assert result["message"] == "Not all games final yet (2/3)"
    assert slate.status == Slate.STATUS_OPEN
    assert DailyScore.query.count() == 0


def test_force_counts_only_final_games(app):
    alice = make_profile()
    slate = make_slate(games=3)
    add_picks(alice, slate, ["home"] * 3)
    finish_games(slate, [(1, 0), (0, 1)], count=2)

    result = finalize_slate(slate.id, force=True)

    assert result["finalized"] is True
    score = DailyScore.query.filter_by(user_id=alice.id).one()
    assert (score.correct_picks, score.total_picks) == (1, 2)
    assert slate.status == Slate.STATUS_FINALIZED


def test_no_picks_still_finalizes(app):
    slate = make_slate(games=1)
    finish_games(slate, [(1, 0)])

    result = finalize_slate(slate.id)

    assert result["message"] == "Slate finalized (no picks)"
    assert slate.status == Slate.STATUS_FINALIZED


def test_missing_slate(app):
    assert finalize_slate(12345)["message"] == "No slate found"


def test_losing_the_finalization_race_writes_nothing(app, db):
    alice = make_profile()
    slate = make_slate(games=1)
    add_picks(alice, slate, ["home"])
    finish_games(slate, [(1, 0)])
    assert slate.status == Slate.STATUS_OPEN

    # Another trigger finalizes behind this session's back
    db.session.execute(
        db.update(Slate)
        .where(Slate.id == slate.id)
        .values(status=Slate.STATUS_FINALIZED)
        .execution_options(synchronize_session=False)
    )

    result = finalize_slate(slate.id)

    assert result["message"] == "Slate already finalized"
    assert DailyScore.query.count() == 0
    assert Streak.get_for_user(alice.id) is None


def test_persistence_error_rolls_back_everything(app, monkeypatch):
    alice = make_profile()
    slate = make_slate(games=1)
    add_picks(alice, slate, ["home"])
    finish_games(slate, [(1, 0)])

    def broken_upsert(*args, **kwargs):
        raise OperationalError("INSERT INTO daily_scores", {}, Exception("disk full"))

    monkeypatch.setattr(DailyScore, "upsert", staticmethod(broken_upsert))

    with pytest.raises(OperationalError):
        finalize_slate(slate.id)

    assert slate.status == Slate.STATUS_OPEN
    assert slate.finalized_at is None
    assert Streak.get_for_user(alice.id) is None

    monkeypatch.undo()
    assert finalize_slate(slate.id)["finalized"] is True


def test_late_finalize_leaves_newer_streak_alone(app):
    alice = make_profile()
    set_streak(alice, 5, TODAY, longest=9)
    old_slate = make_slate(day=TODAY - timedelta(days=2), games=1)
    add_picks(alice, old_slate, ["home"])
    finish_games(old_slate, [(4, 2)])

    result = finalize_slate(old_slate.id)

    assert result["results"] == ["Alice: 1/1 = +25pts (streak: 1)"]
    streak = Streak.get_for_user(alice.id)
    assert streak.current_streak == 5
    assert streak.longest_streak == 9
    assert streak.last_played_date == TODAY


def test_tally_picks_ignores_ungraded_when_forced(app):
    alice = make_profile()
    slate = make_slate(games=2)
    add_picks(alice, slate, ["home", "away"])
    finish_games(slate, [(1, 0)], count=1)

    assert tally_picks(slate.id) == {alice.id: {"correct": 1, "total": 2}}
    assert tally_picks(slate.id, final_games_only=True) == {
        alice.id: {"correct": 1, "total": 1}
    }
