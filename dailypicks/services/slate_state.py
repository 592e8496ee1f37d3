"""
Slate State Machine

One polling pass over outstanding slates: pull scores per sport, move games
upcoming -> live -> final (grading picks as a game goes final), lock slates
once play starts and finalize slates whose games are all final.
"""

import logging
from collections import OrderedDict

from sqlalchemy.exc import SQLAlchemyError

from dailypicks import db
from dailypicks.models import Game, Slate
from dailypicks.services.finalization import finalize_slate
from dailypicks.services.score_normalizer import GameScoreNormalizer
from dailypicks.utils.timezone_utils import get_utc_time

logger = logging.getLogger(__name__)


def _emit(event, *args):
    """Best-effort realtime broadcast; the poll never fails because of it"""
    try:
        from dailypicks import socketio_handlers

        getattr(socketio_handlers, event)(*args)
    except Exception as e:
        logger.warning(f"Failed to emit {event}: {e}")


def describe_score(game):
    label = "FINAL" if game.is_final else "LIVE"
    return (
        f"{game.away_team_abbr or game.away_team} {game.away_score} - "
        f"{game.home_score} {game.home_team_abbr or game.home_team} ({label})"
    )


class SlateStateMachine:
    def __init__(self, normalizer):
        self.normalizer = normalizer

    @classmethod
    def from_config(cls, config, provider=None):
        if provider is None:
            from dailypicks.providers import get_score_provider

            provider = get_score_provider(config)
        return cls(GameScoreNormalizer(provider))

    def poll(self, slate_id=None):
        """
        Run one polling pass.

        With slate_id only that slate is processed; otherwise every open or
        locked slate, oldest first. Returns a dict with message, updates,
        games_updated, games_finalized, slates_locked, slates_finalized and
        errors.
        """
        result = {
            "message": "",
            "updates": [],
            "games_updated": 0,
            "games_finalized": 0,
            "slates_locked": 0,
            "slates_finalized": 0,
            "errors": [],
        }

        if slate_id is not None:
            slate = db.session.get(Slate, slate_id)
            if not slate:
                result["message"] = "No slate found"
                return result
            if slate.is_finalized:
                result["message"] = "Slate already finalized"
                return result
            targets = [slate]
        else:
            targets = Slate.get_outstanding()
            if not targets:
                result["message"] = "No active slates"
                return result

        for slate in targets:
            self._process_slate(slate, result)

        result["message"] = (
            f"Checked {len(targets)} slate(s): {result['games_updated']} games updated, "
            f"{result['games_finalized']} went final, "
            f"{result['slates_finalized']} slate(s) finalized"
        )
        logger.info(result["message"])
        return result

    def _process_slate(self, slate, result):
        pending = slate.pending_games()
        if pending:
            self._update_games(slate, pending, result)

        now = get_utc_time()
        if slate.is_open and any(g.has_started(now) for g in slate.games.all()):
            slate.lock()
            self._commit()
            result["slates_locked"] += 1
            result["updates"].append("Slate locked (first game started)")
            logger.info(f"Slate {slate.id} ({slate.date}) locked")
            _emit("broadcast_slate_locked", slate)

        final, total = slate.game_progress()
        if final == total:
            outcome = finalize_slate(slate.id)
            if outcome["finalized"]:
                result["slates_finalized"] += 1
                result["updates"].append(f"AUTO-FINALIZED: {outcome['message']}")
            else:
                result["updates"].append(outcome["message"])

    def _update_games(self, slate, pending, result):
        by_sport = OrderedDict()
        for game in pending:
            by_sport.setdefault(game.sport, []).append(game)

        for sport, games in by_sport.items():
            records = self.normalizer.fetch_scores(sport, slate.date)
            if records is None:
                result["errors"].append(f"{sport}: failed to fetch scores for {slate.date}")
                continue

            lookup = GameScoreNormalizer.index(records)
            for game in games:
                record = GameScoreNormalizer.match(game, lookup=lookup)
                if not record:
                    continue

                new_status = game.apply_score(
                    record.home_score, record.away_score, record.completed
                )
                if not new_status:
                    continue

                # The transition and its grading commit together
                self._commit()

                result["games_updated"] += 1
                if new_status == Game.STATUS_FINAL:
                    result["games_finalized"] += 1
                result["updates"].append(describe_score(game))
                _emit("broadcast_score_update", game)

    @staticmethod
    def _commit():
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Error saving slate state: {e}", exc_info=True)
            raise
