"""
Slate Builder

Ranks the day's candidate games and persists a fixed-size slate. Ranking
rewards close moneylines, prime-time starts and preferred sports, while a
per-sport cap keeps the slate mixed.
"""

import logging

import requests
from sqlalchemy.exc import IntegrityError

from dailypicks import db
from dailypicks.models import Game, Slate
from dailypicks.providers import ProviderError
from dailypicks.utils.timezone_utils import ensure_utc, get_reference_date, local_hour

logger = logging.getLogger(__name__)

DEFAULT_SLATE_SIZE = 7
DEFAULT_MAX_PER_SPORT = 3

COMPETITIVENESS_WEIGHT = 0.6
PRIME_TIME_BONUS = 0.2
SPORT_PRIORITY_WEIGHT = 0.2
PRIME_TIME_HOURS = (18, 22)  # inclusive, reference timezone
DEFAULT_COMPETITIVENESS = 0.5


def competitiveness(home_odds, away_odds):
    """
    1 - |p_home - p_away| from decimal odds, clamped to [0, 1].

    Even odds score 1.0, a heavy favourite approaches 0. Missing or invalid
    odds get the neutral default.
    """
    if not home_odds or not away_odds or home_odds <= 0 or away_odds <= 0:
        return DEFAULT_COMPETITIVENESS

    diff = abs(1 / home_odds - 1 / away_odds)
    return min(1.0, max(0.0, 1 - diff))


def is_prime_time(commence_time):
    start, end = PRIME_TIME_HOURS
    return start <= local_hour(commence_time) <= end


def score_game(candidate, num_sports):
    """Selection score for one candidate game"""
    prime_time = PRIME_TIME_BONUS if is_prime_time(candidate.commence_time) else 0.0
    priority = 1 - candidate.sport_priority / num_sports if num_sports else 0.0

    return (
        COMPETITIVENESS_WEIGHT
        * competitiveness(candidate.home_odds, candidate.away_odds)
        + prime_time
        + SPORT_PRIORITY_WEIGHT * priority
    )


def _by_start_time(games):
    return sorted(games, key=lambda g: ensure_utc(g.commence_time))


def select_slate_games(
    candidates,
    size=DEFAULT_SLATE_SIZE,
    max_per_sport=DEFAULT_MAX_PER_SPORT,
    num_sports=None,
):
    """
    Choose up to `size` games from the candidates.

    num_sports is the length of the configured sport priority list; when
    not given it is inferred from the candidates themselves.
    Returns the chosen games ordered by start time.
    """
    candidates = list(candidates)
    if len(candidates) <= size:
        return _by_start_time(candidates)

    if not num_sports:
        num_sports = max(
            len({c.sport for c in candidates}),
            max(c.sport_priority for c in candidates) + 1,
        )

    # sorted() is stable, so equal scores keep provider order
    ranked = sorted(candidates, key=lambda c: score_game(c, num_sports), reverse=True)

    selected = []
    chosen = set()
    per_sport = {}

    for index, game in enumerate(ranked):
        if len(selected) >= size:
            break
        if per_sport.get(game.sport, 0) >= max_per_sport:
            continue
        selected.append(game)
        chosen.add(index)
        per_sport[game.sport] = per_sport.get(game.sport, 0) + 1

    # Not enough sports to fill under the cap: backfill by score
    if len(selected) < size:
        for index, game in enumerate(ranked):
            if len(selected) >= size:
                break
            if index not in chosen:
                selected.append(game)
                chosen.add(index)

    return _by_start_time(selected)


class SlateBuilder:
    """Builds the slate for the current reference date"""

    def __init__(self, provider, size=DEFAULT_SLATE_SIZE, max_per_sport=DEFAULT_MAX_PER_SPORT, sports=None):
        self.provider = provider
        self.size = size
        self.max_per_sport = max_per_sport
        self.sports = sports

    @classmethod
    def from_config(cls, config, provider=None):
        if provider is None:
            from dailypicks.providers import get_schedule_provider

            provider = get_schedule_provider(config)

        return cls(
            provider,
            size=config.get("SLATE_SIZE", DEFAULT_SLATE_SIZE),
            max_per_sport=config.get("MAX_GAMES_PER_SPORT", DEFAULT_MAX_PER_SPORT),
            sports=config.get("ENABLED_SPORTS"),
        )

    def _discard_open_slate(self, slate):
        """Delete an untouched open slate so it can be rebuilt"""
        if not slate.is_open:
            return False, f"Slate for {slate.date} is {slate.status}; cannot rebuild"
        if slate.picks.count() > 0:
            return False, f"Slate for {slate.date} already has picks; cannot rebuild"

        db.session.delete(slate)
        db.session.commit()
        logger.info(f"Discarded open slate {slate.id} for {slate.date} before rebuild")
        return True, None

    def build_today(self, force=False):
        """
        Build today's slate if it does not exist yet.

        Returns a dict: message, slate (or None), created (bool), games.
        """
        day = get_reference_date()
        existing = Slate.get_for_date(day)

        if existing and force:
            ok, message = self._discard_open_slate(existing)
            if not ok:
                return {"message": message, "slate": existing, "created": False, "games": []}
            existing = None

        if existing:
            return {
                "message": f"Slate already exists for {day}",
                "slate": existing,
                "created": False,
                "games": [],
            }

        try:
            candidates = self.provider.fetch_candidates(day)
        except (ProviderError, requests.exceptions.RequestException) as e:
            logger.error(f"Schedule provider failed for {day}: {e}")
            return {
                "message": f"Failed to fetch games: {e}",
                "slate": None,
                "created": False,
                "games": [],
            }

        if not candidates:
            logger.info(f"No candidate games for {day}")
            return {"message": "No games found for today", "slate": None, "created": False, "games": []}

        num_sports = len(self.sports) if self.sports else None
        chosen = select_slate_games(
            candidates, size=self.size, max_per_sport=self.max_per_sport, num_sports=num_sports
        )

        slate = Slate(date=day, status=Slate.STATUS_OPEN)
        db.session.add(slate)

        try:
            db.session.flush()
            for candidate in chosen:
                db.session.add(
                    Game(
                        slate_id=slate.id,
                        external_id=candidate.external_id,
                        sport=candidate.sport,
                        home_team=candidate.home_team,
                        away_team=candidate.away_team,
                        home_team_abbr=candidate.home_team_abbr,
                        away_team_abbr=candidate.away_team_abbr,
                        # Stored as naive UTC
                        commence_time=ensure_utc(candidate.commence_time).replace(tzinfo=None),
                        home_odds=candidate.home_odds,
                        away_odds=candidate.away_odds,
                        status=Game.STATUS_UPCOMING,
                    )
                )
            db.session.commit()
        except IntegrityError:
            # Another trigger built the same date first
            db.session.rollback()
            logger.info(f"Slate for {day} was created concurrently")
            return {
                "message": f"Slate already exists for {day}",
                "slate": Slate.get_for_date(day),
                "created": False,
                "games": [],
            }

        summary = [
            f"{g.sport.upper()}: {g.away_team_abbr} @ {g.home_team_abbr}" for g in chosen
        ]
        logger.info(f"Created slate {slate.id} for {day} with {len(chosen)} games")
        return {
            "message": f"Created slate with {len(chosen)} games",
            "slate": slate,
            "created": True,
            "games": summary,
        }
