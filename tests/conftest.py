from datetime import date, datetime, timedelta, timezone

import pytest

from dailypicks import create_app
from dailypicks import db as _db
from dailypicks.models import Game, Pick, Profile, Slate, Streak
from dailypicks.providers import CandidateGame, ProviderError, ScoreRecord
from dailypicks.utils import timezone_utils

# Noon in New York on 2025-01-15
NOON_ET = datetime(2025, 1, 15, 17, 0, tzinfo=timezone.utc)
TODAY = date(2025, 1, 15)
# 7pm in New York that evening
EVENING_ET = datetime(2025, 1, 16, 0, 0, tzinfo=timezone.utc)


class FrozenClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeScheduleProvider:
    name = "fake"

    def __init__(self, candidates=None, error=None):
        self.candidates = list(candidates or [])
        self.error = error
        self.calls = []

    def fetch_candidates(self, day):
        self.calls.append(day)
        if self.error:
            raise self.error
        return list(self.candidates)


class FakeScoreProvider:
    name = "fake"

    def __init__(self, records=None, failing=()):
        self.records = dict(records or {})
        self.failing = set(failing)
        self.calls = []

    def fetch_scores(self, sport, day):
        self.calls.append((sport, day))
        if sport in self.failing:
            raise ProviderError(f"{sport} scoreboard unavailable")
        return list(self.records.get(sport, []))


@pytest.fixture
def clock():
    frozen = FrozenClock(NOON_ET)
    timezone_utils.set_clock(frozen)
    yield frozen
    timezone_utils.set_clock(None)


@pytest.fixture
def app(clock):
    app = create_app("testing")
    with app.app_context():
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, profile):
    with client.session_transaction() as sess:
        sess["_user_id"] = str(profile.id)
        sess["_fresh"] = True


def make_profile(email="alice@example.com", display_name="Alice", is_admin=False):
    profile = Profile(email=email, display_name=display_name, is_admin=is_admin)
    _db.session.add(profile)
    _db.session.commit()
    return profile


def make_slate(day=TODAY, status=Slate.STATUS_OPEN, games=3, sport="nba", start=EVENING_ET):
    slate = Slate(date=day, status=status)
    _db.session.add(slate)
    _db.session.flush()

    for i in range(games):
        _db.session.add(
            Game(
                slate_id=slate.id,
                external_id=f"{day.isoformat()}-{i}",
                sport=sport,
                home_team=f"Home Team {i}",
                away_team=f"Away Team {i}",
                home_team_abbr=f"HM{i}",
                away_team_abbr=f"AW{i}",
                commence_time=start.replace(tzinfo=None) + timedelta(minutes=30 * i),
                home_odds=1.9,
                away_odds=1.9,
                status=Game.STATUS_UPCOMING,
            )
        )
    _db.session.commit()
    return slate


def add_picks(profile, slate, sides):
    """One pick per game in slate order; None skips a game"""
    for game, side in zip(slate.games.all(), sides):
        if side is None:
            continue
        _db.session.add(
            Pick(user_id=profile.id, game_id=game.id, slate_id=slate.id, pick=side)
        )
    _db.session.commit()


def finish_games(slate, results, count=None):
    """Mark games final with (home, away) scores, grading picks as it goes"""
    games = slate.games.all()
    for game, (home, away) in zip(games[:count], results):
        game.apply_score(home, away, True)
    _db.session.commit()


def set_streak(profile, current, last_played, longest=None):
    streak = Streak(
        user_id=profile.id,
        current_streak=current,
        longest_streak=longest if longest is not None else current,
        last_played_date=last_played,
    )
    _db.session.add(streak)
    _db.session.commit()
    return streak


def candidate(
    external_id,
    sport="nba",
    start=NOON_ET,
    home_odds=1.9,
    away_odds=1.9,
    priority=0,
    home="Home",
    away="Away",
):
    return CandidateGame(
        external_id=external_id,
        sport=sport,
        home_team=f"{home} {external_id}",
        away_team=f"{away} {external_id}",
        home_team_abbr="HOM",
        away_team_abbr="AWY",
        commence_time=start,
        home_odds=home_odds,
        away_odds=away_odds,
        sport_priority=priority,
    )


def score(game, home, away, completed, external_id=None):
    return ScoreRecord(
        external_id=external_id if external_id is not None else game.external_id,
        home_team=game.home_team,
        away_team=game.away_team,
        home_score=home,
        away_score=away,
        completed=completed,
    )
