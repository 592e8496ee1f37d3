"""
Slate finalization

Aggregates graded picks into DailyScore rows, advances streaks and marks
the slate finalized, all in one transaction. Picks are graded when their
game goes final (Game.apply_score); nothing here re-grades them.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from dailypicks import db
from dailypicks.models import DailyScore, Game, Pick, Profile, Slate, Streak
from dailypicks.utils.points import calculate_points

logger = logging.getLogger(__name__)


def _result(message, results=None, finalized=False):
    return {"message": message, "results": results or [], "finalized": finalized}


def tally_picks(slate_id, final_games_only=False):
    """{user_id: {"correct": n, "total": n}} from the graded picks of a slate"""
    query = Pick.query.filter(Pick.slate_id == slate_id)
    if final_games_only:
        query = query.join(Game, Pick.game_id == Game.id).filter(
            Game.status == Game.STATUS_FINAL
        )

    tallies = {}
    for pick in query.all():
        tally = tallies.setdefault(pick.user_id, {"correct": 0, "total": 0})
        tally["total"] += 1
        if pick.is_correct is True:
            tally["correct"] += 1
    return tallies


def _score_user(slate, user_id, tally):
    """Write the DailyScore (and Streak) for one user; returns the result line"""
    streak = Streak.get_for_user(user_id)

    if streak and not streak.is_behind(slate.date):
        # A later slate already advanced this streak; leave it alone
        current = 1
        logger.warning(
            f"Slate {slate.id} ({slate.date}) finalized after a later slate for user {user_id}; "
            f"streak left at {streak.current_streak}"
        )
    else:
        current = streak.continued_length(slate.date) if streak else 1
        Streak.record_play(user_id, slate.date, current, existing=streak)

    points = calculate_points(tally["correct"], tally["total"], current)
    DailyScore.upsert(user_id, slate.id, tally["correct"], tally["total"], points)

    profile = db.session.get(Profile, user_id)
    name = profile.name if profile else f"user {user_id}"
    return (
        f"{name}: {tally['correct']}/{tally['total']} = "
        f"+{points['total_points']}pts (streak: {current})"
    )


def _after_commit(slate, result):
    from dailypicks.utils.cache_utils import invalidate_group

    invalidate_group("leaderboard")

    try:
        from dailypicks.socketio_handlers import broadcast_slate_finalized

        broadcast_slate_finalized(slate, result)
    except Exception as e:
        logger.warning(f"Failed to broadcast finalization of slate {slate.id}: {e}")


def finalize_slate(slate_id, force=False):
    """
    Finalize a slate exactly once.

    Without force, every game must be final. With force (manual recovery),
    only picks on games that did reach final are counted. Returns a dict
    with message, results and finalized. Persistence errors roll back the
    whole transaction and propagate, so a retry starts clean.
    """
    slate = db.session.get(Slate, slate_id)
    if not slate:
        return _result("No slate found")

    if slate.is_finalized:
        return _result("Slate already finalized")

    final, total = slate.game_progress()
    if final < total and not force:
        return _result(f"Not all games final yet ({final}/{total})")

    if force and final < total:
        logger.warning(
            f"Force-finalizing slate {slate.id} with {final}/{total} games final"
        )

    try:
        if not slate.claim_finalization():
            db.session.rollback()
            logger.info(f"Slate {slate_id} was finalized by another trigger")
            return _result("Slate already finalized")

        tallies = tally_picks(slate.id, final_games_only=force)

        if not tallies:
            db.session.commit()
            logger.info(f"Slate {slate.id} ({slate.date}) finalized with no picks")
            result = _result("Slate finalized (no picks)", finalized=True)
            _after_commit(slate, result)
            return result

        results = [
            _score_user(slate, user_id, tally)
            for user_id, tally in sorted(tallies.items())
        ]

        db.session.commit()

    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error finalizing slate {slate_id}: {e}", exc_info=True)
        raise

    logger.info(f"Slate {slate.id} ({slate.date}) finalized: {len(results)} users scored")
    result = _result(
        f"Slate finalized! {len(results)} users scored.", results, finalized=True
    )
    _after_commit(slate, result)
    return result
