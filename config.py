import os
import secrets
import warnings

from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, ".env"))


def env_bool(name, default):
    return os.environ.get(name, str(default)).strip().lower() in ("1", "true", "yes")


def env_int(name, default):
    value = os.environ.get(name)
    return int(value) if value else default


def env_list(name, default):
    return [item.strip() for item in os.environ.get(name, default).split(",") if item.strip()]


def _secret(name):
    """Environment secret, or a throwaway one with a warning"""
    value = os.environ.get(name)
    if value:
        return value
    warnings.warn(
        f"🔐 {name} not set! Using a random value; sessions will not survive a restart. "
        "Run 'python3 generate_secrets.py' to create one.",
        UserWarning,
    )
    return secrets.token_urlsafe(32)


class Config:
    SECRET_KEY = _secret("SECRET_KEY")
    WTF_CSRF_SECRET_KEY = _secret("WTF_CSRF_SECRET_KEY")

    # Bearer token for scheduled GET triggers under /cron
    CRON_SECRET = os.environ.get("CRON_SECRET")

    def __init__(self):
        self.SQLALCHEMY_DATABASE_URI = self._build_database_uri()

    def _build_database_uri(self):
        """DATABASE_URL wins; otherwise assemble PostgreSQL from DB_* or use local SQLite"""
        database_url = os.environ.get("DATABASE_URL")
        if database_url:
            return database_url

        if os.environ.get("DB_TYPE", "sqlite").lower() != "postgresql":
            return "sqlite:///" + os.path.join(basedir, "dailypicks.db")

        user = os.environ.get("DB_USER") or "dailypicks"
        password = os.environ.get("DB_PASSWORD") or "dailypicks"
        host = os.environ.get("DB_HOST") or "localhost"
        port = os.environ.get("DB_PORT") or "5432"
        name = os.environ.get("DB_NAME") or "dailypicks_db"
        return f"postgresql+psycopg://{user}:{password}@{host}:{port}/{name}"

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Defines "today", prime time and streak day boundaries
    TIMEZONE = os.environ.get("TIMEZONE", "America/New_York")

    # Slate rules
    SLATE_SIZE = env_int("SLATE_SIZE", 7)
    MAX_GAMES_PER_SPORT = env_int("MAX_GAMES_PER_SPORT", 3)

    # Providers: "espn" (free, no key) or "odds_api"
    SCHEDULE_PROVIDER = os.environ.get("SCHEDULE_PROVIDER", "espn")
    SCORE_PROVIDER = os.environ.get("SCORE_PROVIDER", "espn")
    ESPN_API_BASE_URL = (
        os.environ.get("ESPN_API_BASE_URL")
        or "https://site.api.espn.com/apis/site/v2/sports"
    )
    ODDS_API_BASE_URL = (
        os.environ.get("ODDS_API_BASE_URL") or "https://api.the-odds-api.com/v4"
    )
    ODDS_API_KEY = os.environ.get("ODDS_API_KEY") or os.environ.get("THE_ODDS_API_KEY")
    # Most preferred first; order is the sport priority used by slate ranking
    ENABLED_SPORTS = env_list("ENABLED_SPORTS", "nba,nhl,ncaab")
    PROVIDER_TIMEOUT = float(os.environ.get("PROVIDER_TIMEOUT") or 30)

    # Leaderboard response cache
    CACHE_TYPE = os.environ.get("CACHE_TYPE", "RedisCache")
    CACHE_DEFAULT_TIMEOUT = env_int("CACHE_DEFAULT_TIMEOUT", 300)
    CACHE_REDIS_URL = os.environ.get("CACHE_REDIS_URL", "redis://localhost:6379/0")
    CACHE_KEY_PREFIX = "dailypicks:"

    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "eventlet")

    # Background jobs (times are in TIMEZONE)
    SCHEDULER_ENABLED = env_bool("SCHEDULER_ENABLED", True)
    SCORE_POLL_MINUTES = env_int("SCORE_POLL_MINUTES", 30)
    SLATE_BUILD_HOUR = env_int("SLATE_BUILD_HOUR", 8)
    FINALIZE_HOUR = env_int("FINALIZE_HOUR", 23)

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_TO_CONSOLE = env_bool("LOG_TO_CONSOLE", True)
    LOG_TO_FILE = env_bool("LOG_TO_FILE", True)
    LOG_DIR = os.environ.get("LOG_DIR", "logs")

    FLASK_ENV = os.environ.get("FLASK_ENV", "development")
    DEBUG = FLASK_ENV == "development"
    TESTING = False


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    def __init__(self):
        super().__init__()
        try:
            import redis

            redis.Redis.from_url(self.CACHE_REDIS_URL).ping()
        except Exception:
            self.CACHE_TYPE = "SimpleCache"
            warnings.warn(
                "🔶 Redis not reachable, leaderboard cache falls back to SimpleCache.",
                UserWarning,
            )


class ProductionConfig(Config):
    DEBUG = False

    def __init__(self):
        super().__init__()

        for name, consequence in (
            ("SECRET_KEY", "sessions reset on every restart"),
            ("CRON_SECRET", "scheduled GET triggers are rejected"),
            ("DATABASE_URL", "data goes to a local SQLite file"),
        ):
            if not os.environ.get(name):
                warnings.warn(
                    f"🚨 PRODUCTION WARNING: {name} not set, {consequence}.",
                    UserWarning,
                )


class TestingConfig(Config):
    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    WTF_CSRF_ENABLED = False
    CACHE_TYPE = "SimpleCache"
    SOCKETIO_ASYNC_MODE = "threading"
    SCHEDULER_ENABLED = False
    LOG_TO_FILE = False
    RATELIMIT_ENABLED = False
    CRON_SECRET = "test-cron-secret"
    ENABLED_SPORTS = ["nba", "nhl", "ncaab"]

    def __init__(self):
        # In-memory database regardless of DATABASE_URL
        pass


config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}
