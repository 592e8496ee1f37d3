from datetime import timedelta

from conftest import TODAY, add_picks, finish_games, make_profile, make_slate

from dailypicks.services.finalization import finalize_slate
from dailypicks.services.leaderboard import (
    all_time_leaderboard,
    daily_leaderboard,
    slate_participation,
)


def play_day(day, picks_by_profile, results):
    slate = make_slate(day=day, games=len(results))
    for profile, sides in picks_by_profile:
        add_picks(profile, slate, sides)
    finish_games(slate, results)
    finalize_slate(slate.id)
    return slate


def test_all_time_ranks_by_points(app):
    alice = make_profile()
    bob = make_profile("bob@example.com", "Bob")
    play_day(TODAY - timedelta(days=1), [(alice, ["home"]), (bob, ["away"])], [(2, 1)])
    play_day(TODAY, [(alice, ["home"]), (bob, ["home"])], [(2, 1)])

    entries = all_time_leaderboard()

    assert [e["display_name"] for e in entries] == ["Alice", "Bob"]
    assert [e["rank"] for e in entries] == [1, 2]
    top = entries[0]
    assert top["days_played"] == 2
    assert top["total_correct"] == 2
    assert top["accuracy"] == 100.0
    assert top["current_streak"] == 2
    # 25 then 25 (no bonus until a 3-day streak)
    assert top["total_points"] == 50
    assert entries[1]["total_points"] == 10 + 25


def test_all_time_limit(app):
    players = [make_profile(f"p{i}@example.com", f"Player {i}") for i in range(3)]
    play_day(TODAY, [(p, ["home"]) for p in players], [(1, 0)])

    assert len(all_time_leaderboard(limit=2)) == 2


def test_empty_leaderboard(app):
    assert all_time_leaderboard() == []


def test_daily_blocks_follow_slate_order(app):
    alice = make_profile()
    bob = make_profile("bob@example.com", "Bob")
    slate = play_day(
        TODAY,
        [(alice, ["home", "away", None]), (bob, ["home", "away", "home"])],
        [(3, 1), (1, 3), (2, 0)],
    )

    entries = daily_leaderboard(slate)

    assert entries[0]["display_name"] == "Bob"
    assert entries[0]["grid"] == "🟩🟩🟩"
    assert entries[1]["grid"] == "🟩🟩⬜"
    assert [e["rank"] for e in entries] == [1, 2]


def test_participation_shows_counts_not_picks(app):
    alice = make_profile()
    bob = make_profile("bob@example.com", "Bob Smith")
    slate = make_slate(games=3)
    add_picks(alice, slate, ["home"])
    add_picks(bob, slate, ["home", "away", "home"])

    activity = slate_participation(slate)

    assert activity["count"] == 2
    assert activity["names"] == ["Bob", "Alice"]
    assert activity["players"][0] == {
        "display_name": "Bob Smith",
        "picks_count": 3,
        "total_games": 3,
        "locked_in": True,
    }
    assert all("pick" not in player for player in activity["players"])


def test_participation_without_picks(app):
    assert slate_participation(make_slate()) == {"count": 0, "players": [], "names": []}
