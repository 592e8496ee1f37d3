"""
ESPN scoreboard provider

Uses the public site API (no key):
    {base}/{category}/{league}/scoreboard?dates=YYYYMMDD
Moneylines come as American odds and are converted to decimal.
"""

import logging

import requests

from dailypicks.providers.base import (
    CandidateGame,
    ProviderClient,
    ProviderError,
    ScoreRecord,
    american_to_decimal,
)
from dailypicks.utils.timezone_utils import parse_iso_datetime

logger = logging.getLogger(__name__)

ESPN_SPORT_SLUGS = {
    "nba": "basketball/nba",
    "nhl": "hockey/nhl",
    "ncaab": "basketball/mens-college-basketball",
    "nfl": "football/nfl",
    "ncaaf": "football/college-football",
    "mlb": "baseball/mlb",
    "epl": "soccer/eng.1",
    "mls": "soccer/usa.1",
}

# ESPN short codes that differ from the ones we display
TEAM_ABBR_OVERRIDES = {
    "GS": "GSW",
    "NY": "NYK",
    "SA": "SAS",
    "NO": "NOP",
    "WSH": "WAS",
    "PHO": "PHX",
    "UTAH": "UTA",
}

SKIPPED_CANDIDATE_STATUSES = ("STATUS_FINAL", "STATUS_POSTPONED", "STATUS_CANCELED")


def normalize_abbr(abbr):
    abbr = (abbr or "").upper()
    return TEAM_ABBR_OVERRIDES.get(abbr, abbr)


def _competitors(event):
    comp = (event.get("competitions") or [None])[0]
    if not comp:
        return None, None, None

    home = away = None
    for competitor in comp.get("competitors", []):
        if competitor.get("homeAway") == "home":
            home = competitor
        elif competitor.get("homeAway") == "away":
            away = competitor
    return comp, home, away


def _moneylines(comp):
    """(home_odds, away_odds) in decimal, or (None, None)"""
    odds = (comp.get("odds") or [None])[0]
    if not odds:
        return None, None

    moneyline = odds.get("moneyline")
    if moneyline:
        home = moneyline.get("home", {})
        away = moneyline.get("away", {})
        home_ml = home.get("close", {}).get("odds") or home.get("open", {}).get("odds")
        away_ml = away.get("close", {}).get("odds") or away.get("open", {}).get("odds")
    else:
        home_ml = odds.get("homeTeamOdds", {}).get("moneyLine")
        away_ml = odds.get("awayTeamOdds", {}).get("moneyLine")

    if home_ml is None or away_ml is None:
        return None, None

    home_odds = american_to_decimal(home_ml)
    away_odds = american_to_decimal(away_ml)
    if home_odds is None or away_odds is None:
        return None, None
    return home_odds, away_odds


def _parse_score(value):
    if value is None or value == "":
        return None
    if isinstance(value, dict):
        value = value.get("value", value.get("displayValue"))
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


class ESPNProvider(ProviderClient):
    """Schedule, odds and score provider backed by ESPN's scoreboard"""

    name = "espn"

    def __init__(
        self,
        api_base_url="https://site.api.espn.com/apis/site/v2/sports",
        sports=None,
        timeout=30,
        min_request_interval=0.5,
    ):
        super().__init__(api_base_url, timeout, min_request_interval)
        self.sports = [s for s in (sports or ["nba", "nhl", "ncaab"]) if s in ESPN_SPORT_SLUGS]

    def _scoreboard(self, sport, day):
        url = f"{self.api_base_url}/{ESPN_SPORT_SLUGS[sport]}/scoreboard"
        data = self._make_api_request(url, params={"dates": day.strftime("%Y%m%d")})
        if not isinstance(data, dict):
            raise ProviderError(f"Unexpected ESPN payload for {sport}")
        return data.get("events", [])

    def parse_event(self, event, sport, priority=0):
        """Turn one scoreboard event into a CandidateGame (None if incomplete)"""
        comp, home, away = _competitors(event)
        if not comp or not home or not away:
            return None

        commence_time = parse_iso_datetime(event.get("date") or comp.get("date"))
        if not commence_time:
            return None

        home_team = home.get("team", {})
        away_team = away.get("team", {})
        home_odds, away_odds = _moneylines(comp)

        return CandidateGame(
            external_id=str(event.get("id")),
            sport=sport,
            home_team=home_team.get("displayName", ""),
            away_team=away_team.get("displayName", ""),
            home_team_abbr=normalize_abbr(home_team.get("abbreviation")),
            away_team_abbr=normalize_abbr(away_team.get("abbreviation")),
            commence_time=commence_time,
            home_odds=home_odds,
            away_odds=away_odds,
            sport_priority=priority,
        )

    def fetch_candidates(self, day):
        candidates = []

        for priority, sport in enumerate(self.sports):
            try:
                events = self._scoreboard(sport, day)
            except (requests.exceptions.RequestException, ProviderError, ValueError) as e:
                logger.warning(f"ESPN: skipping {sport}: {e}")
                continue

            added = 0
            for event in events:
                status = event.get("status", {}).get("type", {}).get("name")
                if status in SKIPPED_CANDIDATE_STATUSES:
                    continue

                game = self.parse_event(event, sport, priority)
                if game:
                    candidates.append(game)
                    added += 1

            logger.info(f"ESPN: {sport} -> {len(events)} events, {added} candidates")

        return candidates

    def parse_score(self, event):
        comp, home, away = _competitors(event)
        if not comp or not home or not away:
            return None

        status_type = event.get("status", comp.get("status", {})).get("type", {})
        completed = status_type.get("name") == "STATUS_FINAL" or bool(
            status_type.get("completed")
        )

        # Pregame events carry "0" scores; only trust them once play starts
        started = completed or status_type.get("state") in ("in", "post")
        home_score = _parse_score(home.get("score")) if started else None
        away_score = _parse_score(away.get("score")) if started else None

        return ScoreRecord(
            external_id=str(event.get("id")),
            home_team=home.get("team", {}).get("displayName", ""),
            away_team=away.get("team", {}).get("displayName", ""),
            home_score=home_score,
            away_score=away_score,
            completed=completed,
        )

    def fetch_scores(self, sport, day):
        if sport not in ESPN_SPORT_SLUGS:
            logger.info(f"ESPN: no scoreboard for sport '{sport}'")
            return []

        records = []
        for event in self._scoreboard(sport, day):
            record = self.parse_score(event)
            if record:
                records.append(record)
        return records
