"""
The Odds API provider (https://the-odds-api.com, v4)

Needs ODDS_API_KEY. Odds are requested in decimal format; h2h outcomes are
matched to the home/away side by team name.
"""

import logging

import requests

from dailypicks.providers.base import (
    CandidateGame,
    ProviderClient,
    ProviderError,
    ScoreRecord,
    abbreviate,
)
from dailypicks.utils.timezone_utils import local_date, parse_iso_datetime

logger = logging.getLogger(__name__)

ODDS_API_SPORT_KEYS = {
    "nba": "basketball_nba",
    "nfl": "americanfootball_nfl",
    "nhl": "icehockey_nhl",
    "mlb": "baseball_mlb",
    "ncaab": "basketball_ncaab",
    "ncaaf": "americanfootball_ncaaf",
    "epl": "soccer_epl",
    "mls": "soccer_usa_mls",
}

# The scores endpoint accepts 1-3
SCORES_DAYS_FROM = 3


def _h2h_odds(game):
    """(home_odds, away_odds) from the first bookmaker offering h2h"""
    home_team = game.get("home_team")
    away_team = game.get("away_team")

    for bookmaker in game.get("bookmakers", []):
        for market in bookmaker.get("markets", []):
            if market.get("key") != "h2h":
                continue

            prices = {o.get("name"): o.get("price") for o in market.get("outcomes", [])}
            home_odds = prices.get(home_team)
            away_odds = prices.get(away_team)
            if home_odds and away_odds:
                return float(home_odds), float(away_odds)

    return None, None


def _parse_score(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class OddsAPIProvider(ProviderClient):
    """Schedule, odds and score provider backed by The Odds API"""

    name = "odds_api"

    def __init__(
        self,
        api_key,
        api_base_url="https://api.the-odds-api.com/v4",
        sports=None,
        timeout=30,
        min_request_interval=0.5,
    ):
        super().__init__(api_base_url, timeout, min_request_interval)
        self.api_key = api_key
        self.sports = [
            s for s in (sports or ["nba", "nhl", "ncaab"]) if s in ODDS_API_SPORT_KEYS
        ]

    def _require_key(self):
        if not self.api_key:
            raise ProviderError("ODDS_API_KEY not set")

    def parse_game(self, game, sport, priority=0):
        commence_time = parse_iso_datetime(game.get("commence_time"))
        if not commence_time or not game.get("home_team") or not game.get("away_team"):
            return None

        home_odds, away_odds = _h2h_odds(game)
        return CandidateGame(
            external_id=str(game.get("id")),
            sport=sport,
            home_team=game["home_team"],
            away_team=game["away_team"],
            home_team_abbr=abbreviate(game["home_team"]),
            away_team_abbr=abbreviate(game["away_team"]),
            commence_time=commence_time,
            home_odds=home_odds,
            away_odds=away_odds,
            sport_priority=priority,
        )

    def fetch_candidates(self, day):
        self._require_key()
        candidates = []

        for priority, sport in enumerate(self.sports):
            url = f"{self.api_base_url}/sports/{ODDS_API_SPORT_KEYS[sport]}/odds/"
            params = {
                "apiKey": self.api_key,
                "regions": "us",
                "markets": "h2h",
                "oddsFormat": "decimal",
            }
            try:
                games = self._make_api_request(url, params=params)
            except (requests.exceptions.RequestException, ValueError) as e:
                logger.warning(f"Odds API: skipping {sport}: {e}")
                continue

            added = 0
            for game in games or []:
                candidate = self.parse_game(game, sport, priority)
                if candidate and local_date(candidate.commence_time) == day:
                    candidates.append(candidate)
                    added += 1

            logger.info(f"Odds API: {sport} -> {added} games on {day}")

        return candidates

    def parse_score(self, entry):
        home_team = entry.get("home_team", "")
        away_team = entry.get("away_team", "")
        scores = {s.get("name"): s.get("score") for s in entry.get("scores") or []}

        return ScoreRecord(
            external_id=str(entry.get("id")),
            home_team=home_team,
            away_team=away_team,
            home_score=_parse_score(scores.get(home_team)),
            away_score=_parse_score(scores.get(away_team)),
            completed=bool(entry.get("completed")),
        )

    def fetch_scores(self, sport, day):
        self._require_key()
        if sport not in ODDS_API_SPORT_KEYS:
            logger.info(f"Odds API: no scores for sport '{sport}'")
            return []

        url = f"{self.api_base_url}/sports/{ODDS_API_SPORT_KEYS[sport]}/scores/"
        entries = self._make_api_request(
            url, params={"apiKey": self.api_key, "daysFrom": SCORES_DAYS_FROM}
        )

        records = []
        for entry in entries or []:
            commence_time = parse_iso_datetime(entry.get("commence_time"))
            if commence_time and local_date(commence_time) != day:
                continue
            records.append(self.parse_score(entry))
        return records
