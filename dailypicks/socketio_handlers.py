"""
SocketIO Event Handlers for Real-time Updates

Clients connect to the /scores namespace to follow the day's slate: score
changes, the slate locking at first pitch/tip-off, and final results.
"""

import logging

from flask import request
from flask_login import current_user
from flask_socketio import disconnect, emit, join_room, leave_room

from dailypicks import db, socketio
from dailypicks.models import Pick, Slate
from dailypicks.utils.timezone_utils import get_reference_date

logger = logging.getLogger(__name__)

NAMESPACE = "/scores"

# sid -> {"user_id", "subscriptions"}
clients = {}


def slate_room(slate_id):
    return f"slate_{slate_id}"


def user_room(user_id):
    return f"user_picks_{user_id}"


@socketio.on("connect", namespace=NAMESPACE)
def on_connect():
    """Handle client connection to scores namespace"""
    try:
        user_id = current_user.id if current_user.is_authenticated else None
        client_id = request.sid

        logger.info(f"Client connected to /scores: {client_id} (user: {user_id})")

        clients[client_id] = {"user_id": user_id, "subscriptions": set()}

        slate = Slate.get_for_date(get_reference_date())
        emit("slate_data", {"slate": slate.to_dict(include_games=True) if slate else None})

    except Exception as e:
        logger.error(f"Error in scores connect: {e}")


@socketio.on("disconnect", namespace=NAMESPACE)
def on_disconnect():
    """Handle client disconnection from scores namespace"""
    try:
        client_id = request.sid
        if client_id in clients:
            user_id = clients[client_id]["user_id"]
            logger.info(
                f"Client disconnected from /scores: {client_id} (user: {user_id})"
            )
            del clients[client_id]
    except Exception as e:
        logger.error(f"Error in scores disconnect: {e}")


@socketio.on("subscribe_slate", namespace=NAMESPACE)
def on_subscribe_slate(data):
    """Subscribe to updates for one slate"""
    try:
        client_id = request.sid
        slate_id = (data or {}).get("slate_id")

        if client_id in clients and slate_id:
            room_name = slate_room(slate_id)
            if room_name in clients[client_id]["subscriptions"]:
                return

            clients[client_id]["subscriptions"].add(room_name)
            join_room(room_name)

            slate = db.session.get(Slate, slate_id)
            if slate:
                emit("slate_data", {"slate": slate.to_dict(include_games=True)})

            logger.debug(f"Client {client_id} subscribed to slate {slate_id}")
    except Exception as e:
        logger.error(f"Error in subscribe_slate: {e}")


@socketio.on("unsubscribe_slate", namespace=NAMESPACE)
def on_unsubscribe_slate(data):
    try:
        client_id = request.sid
        slate_id = (data or {}).get("slate_id")

        if client_id in clients and slate_id:
            clients[client_id]["subscriptions"].discard(slate_room(slate_id))
            leave_room(slate_room(slate_id))
    except Exception as e:
        logger.error(f"Error in unsubscribe_slate: {e}")


@socketio.on("subscribe_user_picks", namespace=NAMESPACE)
def on_subscribe_user_picks(data=None):
    """Subscribe to grading results for the signed-in user's picks"""
    try:
        if not current_user.is_authenticated:
            disconnect()
            return

        client_id = request.sid
        user_id = current_user.id

        if client_id in clients:
            clients[client_id]["subscriptions"].add(user_room(user_id))
            join_room(user_room(user_id))
    except Exception as e:
        logger.error(f"Error in subscribe_user_picks: {e}")


# Broadcast functions (called from the slate state machine and finalization)
def broadcast_score_update(game):
    """Broadcast a game's new score; final games also push pick results"""
    try:
        socketio.emit(
            "score_update",
            game.to_dict(),
            room=slate_room(game.slate_id),
            namespace=NAMESPACE,
        )

        if game.is_final:
            for pick in Pick.query.filter_by(game_id=game.id).all():
                socketio.emit(
                    "pick_result",
                    {
                        "pick_id": pick.id,
                        "game_id": pick.game_id,
                        "is_correct": pick.is_correct,
                    },
                    room=user_room(pick.user_id),
                    namespace=NAMESPACE,
                )

        logger.debug(f"Broadcasted score update for game {game.id}")

    except Exception as e:
        logger.error(f"Error broadcasting score update: {e}")


def broadcast_slate_locked(slate):
    try:
        socketio.emit(
            "slate_locked",
            {"slate_id": slate.id, "date": slate.date.isoformat()},
            room=slate_room(slate.id),
            namespace=NAMESPACE,
        )
    except Exception as e:
        logger.error(f"Error broadcasting slate lock: {e}")


def broadcast_slate_finalized(slate, result):
    """Tell every listener the day's results are in"""
    try:
        socketio.emit(
            "slate_finalized",
            {
                "slate_id": slate.id,
                "date": slate.date.isoformat(),
                "message": result.get("message"),
            },
            namespace=NAMESPACE,
        )
        logger.info(f"Broadcasted finalization of slate {slate.id}")
    except Exception as e:
        logger.error(f"Error broadcasting slate finalization: {e}")


def get_connection_stats():
    users = [c["user_id"] for c in clients.values()]
    return {
        "total_connections": len(users),
        "authenticated_users": len([u for u in users if u]),
        "anonymous_users": len([u for u in users if not u]),
        "total_subscriptions": sum(len(c["subscriptions"]) for c in clients.values()),
    }
