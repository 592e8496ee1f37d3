from datetime import timedelta

from conftest import (
    TODAY,
    FakeScoreProvider,
    add_picks,
    make_profile,
    make_slate,
    score,
)

from dailypicks.models import DailyScore, Game, Pick, Slate, Streak
from dailypicks.services.score_normalizer import GameScoreNormalizer
from dailypicks.services.slate_state import SlateStateMachine


def machine(provider):
    return SlateStateMachine(GameScoreNormalizer(provider))


def test_no_records_leaves_everything_untouched(app):
    slate = make_slate()

    result = machine(FakeScoreProvider()).poll()

    assert result["games_updated"] == 0
    assert slate.status == Slate.STATUS_OPEN
    assert all(g.status == Game.STATUS_UPCOMING for g in slate.games)


def test_live_score_moves_game_and_locks_slate(app):
    slate = make_slate()
    game = slate.games.first()
    provider = FakeScoreProvider({"nba": [score(game, 50, 48, False)]})

    result = machine(provider).poll()

    assert game.status == Game.STATUS_LIVE
    assert (game.home_score, game.away_score) == (50, 48)
    assert game.winner is None
    assert slate.status == Slate.STATUS_LOCKED
    assert slate.locked_at is not None
    assert "AW0 48 - 50 HM0 (LIVE)" in result["updates"]
    assert "Slate locked (first game started)" in result["updates"]
    assert provider.calls == [("nba", TODAY)]


def test_final_score_sets_winner_and_grades_picks(app):
    slate = make_slate()
    game = slate.games.first()
    alice = make_profile()
    bob = make_profile("bob@example.com", "Bob")
    add_picks(alice, slate, ["home"])
    add_picks(bob, slate, ["away"])

    result = machine(FakeScoreProvider({"nba": [score(game, 100, 98, True)]})).poll()

    assert game.status == Game.STATUS_FINAL
    assert game.winner == Game.WINNER_HOME
    assert Pick.query.filter_by(user_id=alice.id).one().is_correct is True
    assert Pick.query.filter_by(user_id=bob.id).one().is_correct is False
    assert "AW0 98 - 100 HM0 (FINAL)" in result["updates"]
    assert result["games_finalized"] == 1


def test_tie_grades_every_pick_incorrect(app):
    slate = make_slate(games=1)
    game = slate.games.first()
    alice = make_profile()
    bob = make_profile("bob@example.com", "Bob")
    add_picks(alice, slate, ["home"])
    add_picks(bob, slate, ["away"])

    machine(FakeScoreProvider({"nba": [score(game, 3, 3, True)]})).poll()

    assert game.status == Game.STATUS_FINAL
    assert game.winner == Game.WINNER_TIE
    assert [p.is_correct for p in Pick.query.all()] == [False, False]


def test_final_game_never_regresses(app):
    slate = make_slate()
    game = slate.games.first()
    machine(FakeScoreProvider({"nba": [score(game, 100, 98, True)]})).poll()

    result = machine(FakeScoreProvider({"nba": [score(game, 10, 12, False)]})).poll()

    assert game.status == Game.STATUS_FINAL
    assert (game.home_score, game.away_score) == (100, 98)
    assert game.winner == Game.WINNER_HOME
    assert result["games_updated"] == 0


def test_unchanged_live_score_is_not_an_update(app):
    slate = make_slate()
    game = slate.games.first()
    machine(FakeScoreProvider({"nba": [score(game, 20, 18, False)]})).poll()

    result = machine(FakeScoreProvider({"nba": [score(game, 20, 18, False)]})).poll()

    assert result["games_updated"] == 0


def test_record_without_scores_is_ignored(app):
    slate = make_slate()
    game = slate.games.first()

    machine(FakeScoreProvider({"nba": [score(game, None, None, False)]})).poll()

    assert game.status == Game.STATUS_UPCOMING


def test_matches_by_team_names_when_ids_differ(app):
    slate = make_slate(games=1)
    game = slate.games.first()
    record = score(game, 4, 2, False, external_id="other-provider-id")
    record.home_team = game.home_team.upper()
    record.away_team = game.away_team.lower()

    machine(FakeScoreProvider({"nba": [record]})).poll()

    assert game.status == Game.STATUS_LIVE


def test_one_failing_sport_does_not_block_others(app, db):
    slate = make_slate(games=2, sport="nba")
    hockey = Game(
        slate_id=slate.id,
        external_id="hockey-1",
        sport="nhl",
        home_team="Boston Bruins",
        away_team="Toronto Maple Leafs",
        home_team_abbr="BOS",
        away_team_abbr="TOR",
        commence_time=slate.games.first().commence_time,
        status=Game.STATUS_UPCOMING,
    )
    db.session.add(hockey)
    db.session.commit()
    nba_game = slate.games.filter_by(sport="nba").first()

    provider = FakeScoreProvider({"nba": [score(nba_game, 30, 31, False)]}, failing={"nhl"})
    result = machine(provider).poll()

    assert nba_game.status == Game.STATUS_LIVE
    assert hockey.status == Game.STATUS_UPCOMING
    assert len(result["errors"]) == 1
    assert result["errors"][0].startswith("nhl")


def test_slate_locks_on_the_clock_without_scores(app, clock):
    slate = make_slate()
    clock.advance(hours=8)  # past the first start time

    result = machine(FakeScoreProvider()).poll()

    assert slate.status == Slate.STATUS_LOCKED
    assert result["slates_locked"] == 1


def test_last_final_game_auto_finalizes(app):
    slate = make_slate(games=2)
    alice = make_profile()
    add_picks(alice, slate, ["home", "away"])
    g1, g2 = slate.games.all()

    result = machine(
        FakeScoreProvider({"nba": [score(g1, 5, 1, True), score(g2, 2, 7, True)]})
    ).poll()

    assert slate.status == Slate.STATUS_FINALIZED
    assert result["slates_finalized"] == 1
    assert any(u.startswith("AUTO-FINALIZED: Slate finalized!") for u in result["updates"])
    assert DailyScore.query.filter_by(user_id=alice.id).one().correct_picks == 2


def test_backlog_processed_oldest_first(app):
    alice = make_profile()
    older = make_slate(day=TODAY - timedelta(days=2), games=1)
    newer = make_slate(day=TODAY - timedelta(days=1), games=1)
    add_picks(alice, older, ["home"])
    add_picks(alice, newer, ["home"])
    provider = FakeScoreProvider(
        {"nba": [score(older.games.first(), 1, 0, True), score(newer.games.first(), 1, 0, True)]}
    )

    result = machine(provider).poll()

    assert result["slates_finalized"] == 2
    assert [day for _, day in provider.calls] == [older.date, newer.date]
    streak = Streak.get_for_user(alice.id)
    assert streak.current_streak == 2
    assert streak.last_played_date == newer.date


def test_slate_without_pending_games_goes_straight_to_finalization(app):
    slate = make_slate(games=0)

    result = machine(FakeScoreProvider()).poll(slate_id=slate.id)

    assert slate.status == Slate.STATUS_FINALIZED
    assert "AUTO-FINALIZED: Slate finalized (no picks)" in result["updates"]


def test_unknown_slate(app):
    result = machine(FakeScoreProvider()).poll(slate_id=999)

    assert result["message"] == "No slate found"
    assert result["games_updated"] == 0


def test_no_outstanding_slates(app):
    assert machine(FakeScoreProvider()).poll()["message"] == "No active slates"
