"""
Game Score Normalizer

Wraps a score provider so one failing sport never stops a polling pass,
and matches provider records to stored games.
"""

import logging

logger = logging.getLogger(__name__)


def _team_key(name):
    return (name or "").strip().casefold()


class GameScoreNormalizer:
    def __init__(self, provider):
        self.provider = provider

    def fetch_scores(self, sport, day):
        """
        Score records for one sport on one date.

        Returns None when the provider failed (logged), which callers must
        keep distinct from an empty list meaning "no games reported".
        """
        try:
            return list(self.provider.fetch_scores(sport, day))
        except Exception as e:
            logger.error(
                f"Score provider failed for {sport} on {day}: {e}", exc_info=True
            )
            return None

    @staticmethod
    def index(records):
        """Lookup tables by external id and by (home, away) name pair"""
        by_id = {}
        by_names = {}
        for record in records:
            if record.external_id:
                by_id[str(record.external_id)] = record
            by_names[(_team_key(record.home_team), _team_key(record.away_team))] = record
        return by_id, by_names

    @staticmethod
    def match(game, records=None, lookup=None):
        """
        Find the record for a stored game.

        Prefers the provider's external id; falls back to the team name
        pair, compared case-insensitively, for providers whose ids differ.
        """
        by_id, by_names = lookup or GameScoreNormalizer.index(records or [])

        if game.external_id and str(game.external_id) in by_id:
            return by_id[str(game.external_id)]

        return by_names.get((_team_key(game.home_team), _team_key(game.away_team)))
