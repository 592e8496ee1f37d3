"""
Upstream schedule/odds and score providers.

Services receive provider objects; these factories build them from app
config so the choice of upstream stays a deployment setting.
"""

from dailypicks.providers.base import (
    CandidateGame,
    ProviderClient,
    ProviderError,
    ScoreRecord,
)
from dailypicks.providers.espn import ESPNProvider
from dailypicks.providers.odds_api import OddsAPIProvider

PROVIDERS = {
    "espn": ESPNProvider,
    "odds_api": OddsAPIProvider,
}


def _build(name, config):
    sports = config.get("ENABLED_SPORTS") or None
    timeout = config.get("PROVIDER_TIMEOUT", 30)

    if name == "espn":
        return ESPNProvider(
            api_base_url=config.get(
                "ESPN_API_BASE_URL", "https://site.api.espn.com/apis/site/v2/sports"
            ),
            sports=sports,
            timeout=timeout,
        )
    if name == "odds_api":
        return OddsAPIProvider(
            api_key=config.get("ODDS_API_KEY"),
            api_base_url=config.get(
                "ODDS_API_BASE_URL", "https://api.the-odds-api.com/v4"
            ),
            sports=sports,
            timeout=timeout,
        )
    raise ValueError(f"Unknown provider '{name}' (expected one of {sorted(PROVIDERS)})")


def get_schedule_provider(config):
    return _build(config.get("SCHEDULE_PROVIDER", "espn"), config)


def get_score_provider(config):
    return _build(config.get("SCORE_PROVIDER", "espn"), config)


__all__ = [
    "CandidateGame",
    "ESPNProvider",
    "OddsAPIProvider",
    "ProviderClient",
    "ProviderError",
    "ScoreRecord",
    "get_schedule_provider",
    "get_score_provider",
]
