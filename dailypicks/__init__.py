import logging
import os

from flask import Flask, jsonify, request
from flask_caching import Cache
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_socketio import SocketIO
from flask_sqlalchemy import SQLAlchemy
from flask_wtf.csrf import CSRFError, CSRFProtect

from config import config

logger = logging.getLogger(__name__)

db = SQLAlchemy()
login_manager = LoginManager()
socketio = SocketIO()
cache = Cache()
migrate = Migrate()
csrf = CSRFProtect()

JSON_ERRORS = {
    400: "Bad request",
    401: "Authentication required",
    403: "Access forbidden",
    404: "Resource not found",
    405: "Method not allowed",
    429: "Too many requests",
    503: "Service unavailable",
}


def client_ip():
    """Original client address behind a reverse proxy"""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("X-Real-IP") or get_remote_address()


def reachable_redis(url):
    """Return url if a Redis server answers there, else None"""
    if not url:
        return None
    try:
        import redis

        redis.Redis.from_url(url).ping()
        return url
    except Exception as e:
        print(f"⚠ Redis not reachable at {url}: {e}")
        return None


# Shared across workers when Redis is available
limiter = Limiter(
    key_func=client_ip,
    default_limits=["10000 per day", "1000 per hour"],
    storage_uri=reachable_redis(
        os.environ.get("REDIS_URL") or os.environ.get("CACHE_REDIS_URL")
    )
    or "memory://",
)


def create_app(config_name=None):
    config_name = config_name or os.environ.get("FLASK_CONFIG", "default")

    app = Flask(__name__)
    app.config.from_object(config[config_name]())
    app.config.update(
        SESSION_COOKIE_SAMESITE="Lax",
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SECURE=app.config.get("FLASK_ENV") == "production"
        and not app.config.get("DEBUG"),
        WTF_CSRF_TIME_LIMIT=None,
    )

    db.init_app(app)
    login_manager.init_app(app)
    cache.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)
    limiter.init_app(app)
    init_socketio(app)

    @login_manager.user_loader
    def load_user(user_id):
        from dailypicks.models import Profile

        return db.session.get(Profile, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"error": JSON_ERRORS[401]}), 401

    from dailypicks.routes.api import bp as api_bp
    from dailypicks.routes.cron import bp as cron_bp

    app.register_blueprint(api_bp, url_prefix="/api")
    app.register_blueprint(cron_bp, url_prefix="/cron")

    register_error_handlers(app)

    from dailypicks.utils.logging_config import setup_logging

    setup_logging(app)
    log_startup(app, config_name)

    with app.app_context():
        db.create_all()

    if not app.config.get("TESTING"):
        from dailypicks.services.scheduler_service import scheduler_service

        scheduler_service.init_app(app)

    from dailypicks import socketio_handlers  # noqa: F401 - registers event handlers

    return app


def init_socketio(app):
    origins = app.config.get("SOCKETIO_CORS_ORIGINS", "*")
    if origins == "*" and not app.config.get("DEBUG"):
        origins = os.environ.get("ALLOWED_ORIGINS", "http://localhost:5000").split(",")

    # The scheduler emits from a background thread; a Redis queue fans out to workers
    message_queue = None
    if not app.config.get("TESTING"):
        message_queue = reachable_redis(os.environ.get("REDIS_URL"))

    socketio.init_app(
        app,
        cors_allowed_origins=origins,
        async_mode=app.config.get("SOCKETIO_ASYNC_MODE", "eventlet"),
        ping_timeout=60,
        ping_interval=25,
        message_queue=message_queue,
    )


def log_startup(app, config_name):
    logger.info(f"Daily Slate Pick'em starting with '{config_name}' configuration")

    if config_name == "production" and app.config.get("DEBUG"):
        logger.warning("DEBUG mode is enabled in production!")

    if not app.config.get("CRON_SECRET"):
        logger.warning("CRON_SECRET not set: scheduled GET triggers are disabled")

    for role in ("SCHEDULE_PROVIDER", "SCORE_PROVIDER"):
        if app.config.get(role) == "odds_api" and not app.config.get("ODDS_API_KEY"):
            logger.warning(f"{role} is odds_api but ODDS_API_KEY is not set")

    logger.info(
        f"Sports: {', '.join(app.config.get('ENABLED_SPORTS', []))} "
        f"(timezone {app.config.get('TIMEZONE')})"
    )
    logger.info(f"Database: {app.config.get('SQLALCHEMY_DATABASE_URI', '').split('://')[0]}")


def register_error_handlers(app):
    """Security headers plus JSON bodies for every error status"""

    @app.after_request
    def security_headers(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if not app.config.get("DEBUG"):
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response

    @app.errorhandler(CSRFError)
    def csrf_error(error):
        app.logger.warning(f"CSRF Error: {error.description} - Path: {request.path}")
        return jsonify({"error": "Security token expired or invalid"}), 400

    def json_error(error):
        status = getattr(error, "code", 500)
        if status == 400:
            app.logger.warning(f"400 Bad Request: {error} - {request.method} {request.path}")
        return jsonify({"error": JSON_ERRORS.get(status, "Request failed")}), status

    for status in JSON_ERRORS:
        app.register_error_handler(status, json_error)

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        app.logger.error(f"500 on {request.method} {request.path}: {error}")
        return jsonify({"error": "Internal server error"}), 500


from dailypicks import models  # noqa: F401, E402 - imported for model registration
