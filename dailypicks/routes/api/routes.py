import logging

from flask import jsonify, request
from flask_login import current_user, login_required
from flask_wtf.csrf import generate_csrf

from dailypicks import db, limiter
from dailypicks.models import Game, Pick, Slate, Streak
from dailypicks.routes.api import bp
from dailypicks.services.leaderboard import (
    all_time_leaderboard,
    daily_leaderboard,
    slate_participation,
)
from dailypicks.utils.cache_utils import cached_route
from dailypicks.utils.timezone_utils import get_reference_date

logger = logging.getLogger(__name__)


@bp.route("/health")
def health():
    """Liveness probe with a database round trip"""
    try:
        db.session.execute(db.text("SELECT 1"))
        return jsonify({"status": "ok", "date": get_reference_date().isoformat()})
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return jsonify({"status": "error", "error": "Database unavailable"}), 503


@bp.route("/csrf-token")
def csrf_token():
    """Token for the X-CSRFToken header on session-authenticated writes"""
    return jsonify({"csrf_token": generate_csrf()})


@bp.route("/slates/today")
def today_slate():
    """Today's slate (reference timezone) with its games"""
    slate = Slate.get_for_date(get_reference_date())
    if not slate:
        return jsonify({"slate": None, "message": "No slate for today yet"})
    return jsonify({"slate": slate.to_dict(include_games=True)})


@bp.route("/slates/<int:slate_id>")
def slate_detail(slate_id):
    slate = db.get_or_404(Slate, slate_id)
    return jsonify({"slate": slate.to_dict(include_games=True)})


@bp.route("/slates/<int:slate_id>/activity")
def slate_activity(slate_id):
    """Who is playing: display names and pick counts only"""
    slate = db.get_or_404(Slate, slate_id)
    return jsonify(slate_participation(slate))


@bp.route("/slates/<int:slate_id>/leaderboard")
@cached_route("leaderboard", timeout=300)
def slate_leaderboard(slate_id):
    slate = db.get_or_404(Slate, slate_id)
    return {
        "slate": slate.to_dict(),
        "entries": daily_leaderboard(slate),
    }


@bp.route("/leaderboard")
@cached_route("leaderboard", timeout=300)
def leaderboard():
    """All-time standings across finalized slates"""
    return {"entries": all_time_leaderboard()}


@bp.route("/me/picks")
@login_required
def my_picks():
    """Current user's picks for a slate (today's by default)"""
    slate_id = request.args.get("slate_id", type=int)
    if slate_id:
        slate = db.get_or_404(Slate, slate_id)
    else:
        slate = Slate.get_for_date(get_reference_date())
        if not slate:
            return jsonify({"slate_id": None, "picks": [], "message": "No slate for today yet"})

    picks = Pick.query.filter_by(user_id=current_user.id, slate_id=slate.id).all()
    return jsonify({"slate_id": slate.id, "picks": [pick.to_dict() for pick in picks]})


@bp.route("/picks", methods=["POST"])
@login_required
@limiter.limit("60 per minute")
def submit_pick():
    """Create or change a pick: {"game_id": int, "pick": "home" | "away"}"""
    data = request.get_json(silent=True) or {}
    game_id = data.get("game_id")
    selection = data.get("pick")

    if not game_id:
        return jsonify({"error": "No game_id provided"}), 400

    game = db.get_or_404(Game, game_id)
    pick, message = Pick.place(current_user.id, game, selection)
    if pick is None:
        return jsonify({"error": message}), 400

    db.session.commit()
    logger.info(f"User {current_user.id} pick on game {game.id}: {pick.pick} ({message})")
    return jsonify({"success": True, "message": message, "pick": pick.to_dict()})


@bp.route("/picks/<int:game_id>", methods=["DELETE"])
@login_required
def delete_pick(game_id):
    game = db.get_or_404(Game, game_id)
    removed, message = Pick.remove(current_user.id, game)
    if not removed:
        return jsonify({"error": message}), 400

    db.session.commit()
    return jsonify({"success": True, "message": message})


@bp.route("/me/streak")
@login_required
def my_streak():
    streak = Streak.get_for_user(current_user.id)
    if not streak:
        return jsonify(
            {
                "user_id": current_user.id,
                "current_streak": 0,
                "longest_streak": 0,
                "last_played_date": None,
            }
        )
    return jsonify(streak.to_dict())
