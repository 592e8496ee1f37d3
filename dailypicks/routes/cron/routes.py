"""
Manual and scheduled triggers for the slate lifecycle.

GET requests come from an external cron and carry
`Authorization: Bearer <CRON_SECRET>`; POST requests come from a signed-in
admin and may carry options in a JSON body.
"""

import hmac
import logging
from functools import wraps

from flask import current_app, jsonify, request
from flask_login import current_user

from dailypicks.models import Slate
from dailypicks.providers import get_schedule_provider, get_score_provider
from dailypicks.routes.cron import bp
from dailypicks.services.finalization import finalize_slate
from dailypicks.services.score_normalizer import GameScoreNormalizer
from dailypicks.services.slate_builder import SlateBuilder
from dailypicks.services.slate_state import SlateStateMachine
from dailypicks.utils.timezone_utils import get_reference_date

logger = logging.getLogger(__name__)


def _valid_cron_token():
    secret = current_app.config.get("CRON_SECRET")
    header = request.headers.get("Authorization", "")
    if not secret or not header.startswith("Bearer "):
        return False
    return hmac.compare_digest(header[len("Bearer "):], secret)


def trigger_auth(f):
    """Bearer token for GET, admin session for POST"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if request.method == "GET":
            if not _valid_cron_token():
                logger.warning(f"Rejected cron trigger {request.path} from {request.remote_addr}")
                return jsonify({"error": "Unauthorized"}), 401
        else:
            if not current_user.is_authenticated:
                return jsonify({"error": "Authentication required"}), 401
            if not current_user.is_admin:
                return jsonify({"error": "Admin access required"}), 403
        return f(*args, **kwargs)

    return decorated_function


def _options():
    """Trigger options: query string for GET, JSON body for POST"""
    if request.method == "POST":
        return request.get_json(silent=True) or {}
    return request.args


def _slate_id(options):
    value = options.get("slate_id")
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@bp.route("/build-slate", methods=["GET", "POST"])
@trigger_auth
def build_slate():
    options = _options()
    force = request.method == "POST" and bool(options.get("force"))

    builder = SlateBuilder.from_config(
        current_app.config, provider=get_schedule_provider(current_app.config)
    )
    result = builder.build_today(force=force)
    slate = result["slate"]

    logger.info(f"build-slate ({request.method}): {result['message']}")
    return jsonify(
        {
            "message": result["message"],
            "created": result["created"],
            "slate_id": slate.id if slate else None,
            "games": result["games"],
        }
    )


@bp.route("/check-scores", methods=["GET", "POST"])
@trigger_auth
def check_scores():
    machine = SlateStateMachine(
        GameScoreNormalizer(get_score_provider(current_app.config))
    )
    result = machine.poll(slate_id=_slate_id(_options()))

    logger.info(f"check-scores ({request.method}): {result['message']}")
    return jsonify(result)


@bp.route("/finalize", methods=["GET", "POST"])
@trigger_auth
def finalize():
    options = _options()
    slate_id = _slate_id(options)
    force = request.method == "POST" and bool(options.get("force"))

    if force and slate_id is None:
        return jsonify({"error": "force requires an explicit slate_id"}), 400

    if slate_id is None:
        slate = Slate.get_for_date(get_reference_date())
        if not slate:
            return jsonify({"message": "No slate found", "results": [], "finalized": False})
        slate_id = slate.id

    result = finalize_slate(slate_id, force=force)
    logger.info(f"finalize slate {slate_id} ({request.method}, force={force}): {result['message']}")
    return jsonify(result)


@bp.route("/scheduler", methods=["POST"])
@trigger_auth
def scheduler_action():
    """Admin control of background jobs: {"action": "status|run|pause|resume", "job": id}"""
    from dailypicks.services.scheduler_service import scheduler_service

    options = _options()
    action = options.get("action", "status")
    job = options.get("job")

    if action == "status":
        from dailypicks.socketio_handlers import get_connection_stats

        status = scheduler_service.get_status()
        status["socketio"] = get_connection_stats()
        return jsonify(status)

    if job not in scheduler_service.JOB_TYPES:
        return jsonify({"error": f"Unknown job: {job}"}), 400

    if action == "run":
        success, message = scheduler_service.force_sync(job)
    elif action == "pause":
        success, message = scheduler_service.pause_job(job)
    elif action == "resume":
        success, message = scheduler_service.resume_job(job)
    else:
        return jsonify({"error": f"Unknown action: {action}"}), 400

    return jsonify({"success": success, "message": message}), (200 if success else 400)
