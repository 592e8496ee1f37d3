from collections import Counter
from datetime import timedelta

import pytest
from conftest import (
    EVENING_ET,
    NOON_ET,
    TODAY,
    FakeScheduleProvider,
    add_picks,
    candidate,
    make_profile,
)

from dailypicks.models import Game, Slate
from dailypicks.providers import ProviderError
from dailypicks.services.slate_builder import (
    SlateBuilder,
    competitiveness,
    score_game,
    select_slate_games,
)


class TestCompetitiveness:
    def test_even_odds_are_fully_competitive(self):
        assert competitiveness(2.0, 2.0) == pytest.approx(1.0)

    def test_favourite_lowers_score(self):
        # implied 2/3 vs 1/3
        assert competitiveness(1.5, 3.0) == pytest.approx(2 / 3)

    def test_missing_odds_use_default(self):
        assert competitiveness(None, 2.0) == 0.5
        assert competitiveness(None, None) == 0.5
        assert competitiveness(0, 1.8) == 0.5

    def test_clamped_to_unit_interval(self):
        assert 0.0 <= competitiveness(1.01, 100.0) <= 1.0


class TestSelection:
    def test_small_pool_returns_everything_by_start_time(self):
        games = [
            candidate("b", start=NOON_ET + timedelta(hours=2)),
            candidate("a", start=NOON_ET),
            candidate("c", start=NOON_ET + timedelta(hours=1)),
        ]

        chosen = select_slate_games(games, size=7)

        assert [g.external_id for g in chosen] == ["a", "c", "b"]

    def test_sport_cap_then_priority(self):
        games = []
        for priority, sport in enumerate(["nba", "nhl", "ncaab"]):
            for i in range(4):
                games.append(candidate(f"{sport}{i}", sport=sport, priority=priority))

        chosen = select_slate_games(games, size=7, max_per_sport=3, num_sports=3)

        assert len(chosen) == 7
        assert Counter(g.sport for g in chosen) == {"nba": 3, "nhl": 3, "ncaab": 1}

    def test_backfill_ignores_cap_when_sports_run_out(self):
        games = [candidate(f"nba{i}", sport="nba") for i in range(10)]
        games += [candidate(f"nhl{i}", sport="nhl", priority=1) for i in range(2)]

        chosen = select_slate_games(games, size=7, max_per_sport=3, num_sports=3)

        counts = Counter(g.sport for g in chosen)
        assert len(chosen) == 7
        assert counts["nhl"] == 2
        assert counts["nba"] == 5
        assert len({g.external_id for g in chosen}) == 7

    def test_lopsided_games_are_dropped_first(self):
        games = [candidate(f"close{i}", home_odds=1.9, away_odds=1.95) for i in range(7)]
        games += [
            candidate("blowout1", home_odds=1.05, away_odds=12.0),
            candidate("blowout2", home_odds=1.1, away_odds=8.0),
        ]

        chosen = select_slate_games(games, size=7, max_per_sport=9, num_sports=3)

        assert "blowout1" not in {g.external_id for g in chosen}
        assert "blowout2" not in {g.external_id for g in chosen}

    def test_prime_time_adds_bonus(self):
        day_game = candidate("day", start=NOON_ET)
        night_game = candidate("night", start=EVENING_ET)

        assert score_game(night_game, 3) - score_game(day_game, 3) == pytest.approx(0.2)

    def test_output_sorted_by_start_time(self):
        games = [
            candidate(f"g{i}", sport=["nba", "nhl", "ncaab"][i % 3], start=NOON_ET + timedelta(minutes=(20 - i) * 10), priority=i % 3)
            for i in range(12)
        ]

        chosen = select_slate_games(games, size=7, num_sports=3)
        starts = [g.commence_time for g in chosen]

        assert starts == sorted(starts)

    def test_never_returns_more_than_size(self):
        games = [candidate(f"g{i}") for i in range(20)]
        assert len(select_slate_games(games, size=7)) == 7


def _candidates(n=9):
    sports = ["nba", "nhl", "ncaab"]
    return [
        candidate(
            f"ev{i}",
            sport=sports[i % 3],
            priority=i % 3,
            start=EVENING_ET + timedelta(minutes=15 * i),
        )
        for i in range(n)
    ]


class TestSlateBuilder:
    def test_builds_open_slate_with_upcoming_games(self, app):
        provider = FakeScheduleProvider(_candidates())
        result = SlateBuilder(provider, sports=["nba", "nhl", "ncaab"]).build_today()

        assert result["created"] is True
        slate = Slate.get_for_date(TODAY)
        assert slate.status == Slate.STATUS_OPEN
        games = slate.games.all()
        assert len(games) == 7
        assert all(g.status == Game.STATUS_UPCOMING for g in games)
        assert all(g.winner is None for g in games)
        assert provider.calls == [TODAY]

    def test_second_build_is_a_no_op(self, app):
        provider = FakeScheduleProvider(_candidates())
        builder = SlateBuilder(provider)

        first = builder.build_today()
        second = builder.build_today()

        assert second["created"] is False
        assert "already exists" in second["message"]
        assert second["slate"].id == first["slate"].id
        assert Slate.query.count() == 1
        assert len(provider.calls) == 1

    def test_no_candidates_creates_nothing(self, app):
        result = SlateBuilder(FakeScheduleProvider([])).build_today()

        assert result["message"] == "No games found for today"
        assert Slate.query.count() == 0

    def test_provider_failure_is_reported(self, app):
        provider = FakeScheduleProvider(error=ProviderError("ODDS_API_KEY not set"))
        result = SlateBuilder(provider).build_today()

        assert result["created"] is False
        assert "ODDS_API_KEY" in result["message"]
        assert Slate.query.count() == 0

    def test_force_rebuilds_untouched_open_slate(self, app):
        SlateBuilder(FakeScheduleProvider(_candidates(4))).build_today()

        result = SlateBuilder(FakeScheduleProvider(_candidates(9))).build_today(force=True)

        assert result["created"] is True
        assert Slate.query.count() == 1
        assert Slate.get_for_date(TODAY).games.count() == 7

    def test_force_refuses_once_picks_exist(self, app):
        SlateBuilder(FakeScheduleProvider(_candidates(4))).build_today()
        slate = Slate.get_for_date(TODAY)
        add_picks(make_profile(), slate, ["home"])

        result = SlateBuilder(FakeScheduleProvider(_candidates(9))).build_today(force=True)

        assert result["created"] is False
        assert "cannot rebuild" in result["message"]
        assert Slate.get_for_date(TODAY).games.count() == 4

    def test_commence_time_stored_as_naive_utc(self, app):
        SlateBuilder(FakeScheduleProvider(_candidates(1))).build_today()
        game = Game.query.first()

        assert game.commence_time.tzinfo is None
        assert game.commence_time == EVENING_ET.replace(tzinfo=None)

    def test_from_config_reads_sizes(self, app):
        app.config["SLATE_SIZE"] = 5
        builder = SlateBuilder.from_config(app.config, provider=FakeScheduleProvider(_candidates()))

        builder.build_today()

        assert Slate.get_for_date(TODAY).games.count() == 5
