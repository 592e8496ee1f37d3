import logging
import time
from dataclasses import dataclass
from datetime import datetime
from functools import wraps
from typing import Optional

import requests

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Raised when an upstream provider cannot be reached or parsed"""


@dataclass
class CandidateGame:
    """A game offered by a schedule provider for slate selection"""

    external_id: str
    sport: str
    home_team: str
    away_team: str
    home_team_abbr: str
    away_team_abbr: str
    commence_time: datetime  # aware, UTC
    home_odds: Optional[float] = None  # decimal odds
    away_odds: Optional[float] = None
    sport_priority: int = 0  # lower = preferred sport


@dataclass
class ScoreRecord:
    """Normalized scoreboard entry for one game"""

    external_id: str
    home_team: str
    away_team: str
    home_score: Optional[int]
    away_score: Optional[int]
    completed: bool


def rate_limit_decorator(max_retries=3, base_delay=1.0, backoff_factor=2.0):
    """
    Decorator to handle API rate limiting with exponential backoff
    """

    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            for attempt in range(max_retries):
                try:
                    return func(self, *args, **kwargs)

                except requests.exceptions.HTTPError as e:
                    status = e.response.status_code if e.response is not None else None
                    # Client errors other than 429 will not get better on retry
                    if status is not None and status < 500 and status != 429:
                        raise

                    delay = base_delay * (backoff_factor**attempt)
                    retry_after = (
                        e.response.headers.get("Retry-After")
                        if e.response is not None
                        else None
                    )
                    if status == 429 and str(retry_after or "").isdigit():
                        delay = int(retry_after)
                    logger.warning(
                        f"HTTP {status}. Waiting {delay}s before retry {attempt + 1}/{max_retries}"
                    )
                    if attempt < max_retries - 1:
                        time.sleep(delay)
                    else:
                        raise

                except requests.exceptions.RequestException as e:
                    delay = base_delay * (backoff_factor**attempt)
                    logger.warning(
                        f"Request failed: {e}. Waiting {delay}s before retry {attempt + 1}/{max_retries}"
                    )
                    if attempt < max_retries - 1:
                        time.sleep(delay)
                    else:
                        raise

            raise ProviderError(f"Max retries ({max_retries}) exceeded")

        return wrapper

    return decorator


class ProviderClient:
    """
    Shared HTTP plumbing for schedule and score providers: a pooled session,
    client-side rate limiting and retry with backoff.
    """

    name = "base"

    def __init__(self, api_base_url, timeout=30, min_request_interval=0.5):
        self.api_base_url = api_base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": "DailyPicks-App/1.0"})

        # Rate limiting configuration
        self.request_count = 0
        self.last_request_time = 0
        self.min_request_interval = min_request_interval
        self.max_requests_per_minute = 60  # Conservative limit
        self.request_timestamps = []

    def _enforce_rate_limit(self):
        """Enforce rate limiting before making requests"""
        current_time = time.time()

        # Remove timestamps older than 1 minute
        self.request_timestamps = [
            ts for ts in self.request_timestamps if current_time - ts < 60
        ]

        if len(self.request_timestamps) >= self.max_requests_per_minute:
            sleep_time = 60 - (current_time - self.request_timestamps[0])
            if sleep_time > 0:
                logger.info(f"Rate limit reached. Sleeping for {sleep_time:.1f}s")
                time.sleep(sleep_time)
                self.request_timestamps = []

        time_since_last = current_time - self.last_request_time
        if time_since_last < self.min_request_interval:
            time.sleep(self.min_request_interval - time_since_last)

        self.last_request_time = time.time()
        self.request_timestamps.append(self.last_request_time)
        self.request_count += 1

    @rate_limit_decorator(max_retries=3, base_delay=2.0)
    def _make_api_request(self, url, params=None):
        """GET a JSON document with rate limiting and retry logic"""
        self._enforce_rate_limit()

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()

        except requests.exceptions.Timeout:
            logger.warning(f"Request timeout for {url}")
            raise
        except requests.exceptions.ConnectionError:
            logger.warning(f"Connection error for {url}")
            raise
        except requests.exceptions.HTTPError as e:
            if e.response is not None and e.response.status_code >= 500:
                logger.warning(f"Server error {e.response.status_code}: {url}")
            else:
                status = e.response.status_code if e.response is not None else "?"
                logger.error(f"HTTP error {status}: {url}")
            raise

    def get_rate_limit_status(self):
        """Get current rate limit status"""
        current_time = time.time()
        self.request_timestamps = [
            ts for ts in self.request_timestamps if current_time - ts < 60
        ]

        return {
            "provider": self.name,
            "total_requests": self.request_count,
            "requests_last_minute": len(self.request_timestamps),
            "max_requests_per_minute": self.max_requests_per_minute,
            "time_since_last_request": (
                current_time - self.last_request_time if self.last_request_time else 0
            ),
            "min_request_interval": self.min_request_interval,
        }

    def fetch_candidates(self, day):
        """Candidate games starting on `day` (reference timezone) across sports"""
        raise NotImplementedError

    def fetch_scores(self, sport, day):
        """Scoreboard records for one sport on `day`; raises on failure"""
        raise NotImplementedError


# Common NBA/NFL abbreviations for providers that only send full names
KNOWN_ABBREVIATIONS = {
    "Los Angeles Lakers": "LAL",
    "Los Angeles Clippers": "LAC",
    "Golden State Warriors": "GSW",
    "New York Knicks": "NYK",
    "Brooklyn Nets": "BKN",
    "San Antonio Spurs": "SAS",
    "Oklahoma City Thunder": "OKC",
    "Portland Trail Blazers": "POR",
    "New Orleans Pelicans": "NOP",
    "Minnesota Timberwolves": "MIN",
    "Sacramento Kings": "SAC",
    "Philadelphia 76ers": "PHI",
    "Milwaukee Bucks": "MIL",
    "Boston Celtics": "BOS",
    "Miami Heat": "MIA",
    "Chicago Bulls": "CHI",
    "Dallas Mavericks": "DAL",
    "Houston Rockets": "HOU",
    "Denver Nuggets": "DEN",
    "Phoenix Suns": "PHX",
    "Utah Jazz": "UTA",
    "Cleveland Cavaliers": "CLE",
    "Atlanta Hawks": "ATL",
    "Toronto Raptors": "TOR",
    "Charlotte Hornets": "CHA",
    "Indiana Pacers": "IND",
    "Detroit Pistons": "DET",
    "Orlando Magic": "ORL",
    "Washington Wizards": "WAS",
    "Memphis Grizzlies": "MEM",
    "Kansas City Chiefs": "KC",
    "Buffalo Bills": "BUF",
    "San Francisco 49ers": "SF",
    "Dallas Cowboys": "DAL",
    "Philadelphia Eagles": "PHI",
    "New York Giants": "NYG",
    "New York Jets": "NYJ",
    "New England Patriots": "NE",
    "Green Bay Packers": "GB",
    "Tampa Bay Buccaneers": "TB",
    "Las Vegas Raiders": "LV",
    "Los Angeles Rams": "LAR",
    "Los Angeles Chargers": "LAC",
    "Baltimore Ravens": "BAL",
    "Pittsburgh Steelers": "PIT",
    "Cincinnati Bengals": "CIN",
    "Cleveland Browns": "CLE",
    "Jacksonville Jaguars": "JAX",
    "Tennessee Titans": "TEN",
    "Indianapolis Colts": "IND",
    "Houston Texans": "HOU",
    "Denver Broncos": "DEN",
    "Seattle Seahawks": "SEA",
    "Arizona Cardinals": "ARI",
    "Atlanta Falcons": "ATL",
    "Carolina Panthers": "CAR",
    "New Orleans Saints": "NO",
    "Minnesota Vikings": "MIN",
    "Chicago Bears": "CHI",
    "Detroit Lions": "DET",
    "Washington Commanders": "WAS",
    "Miami Dolphins": "MIA",
}


def abbreviate(name):
    """Known abbreviation, else the first three letters of the last word"""
    if not name:
        return ""
    if name in KNOWN_ABBREVIATIONS:
        return KNOWN_ABBREVIATIONS[name]
    return name.split()[-1][:3].upper()


def american_to_decimal(american):
    """
    Convert American moneyline odds to decimal odds.

    -700 -> 1.143, +500 -> 6.0. Returns None for unparseable input.
    """
    try:
        value = int(str(american).strip().replace("+", ""))
    except (TypeError, ValueError):
        return None

    if value == 0:
        return None
    if value < 0:
        return round(100 / abs(value) + 1, 3)
    return round(value / 100 + 1, 3)
