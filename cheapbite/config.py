"""
Configuration classes, selected by name in create_app().

Every value can be overridden from the environment so the same code runs on a
laptop (SQLite in the instance folder, local media directory) and behind a
real database, media bucket and content-generation service.
"""
import os


def _bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-change-me")

    SQLALCHEMY_DATABASE_URI        = os.environ.get("DATABASE_URL", "sqlite:///cheapbite.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # ── Uploads ──────────────────────────────────────────────────────────────
    MAX_CONTENT_LENGTH = int(os.environ.get("MAX_CONTENT_LENGTH", 10 * 1024 * 1024))
    MEDIA_STORE_URL    = os.environ.get("MEDIA_STORE_URL", "")
    MEDIA_STORE_TOKEN  = os.environ.get("MEDIA_STORE_TOKEN", "")
    MEDIA_UPLOAD_DIR   = os.environ.get("MEDIA_UPLOAD_DIR", "")   # default: <instance>/media

    # ── Content-generation service ───────────────────────────────────────────
    GENERATION_SERVICE_URL   = os.environ.get("GENERATION_SERVICE_URL", "http://localhost:3400")
    GENERATION_SERVICE_TOKEN = os.environ.get("GENERATION_SERVICE_TOKEN", "")
    GENERATION_TIMEOUT       = float(os.environ.get("GENERATION_TIMEOUT", 60))
    GENERATION_JOB_TTL       = float(os.environ.get("GENERATION_JOB_TTL", 600))    # seconds a settled job is kept
    GENERATION_JOB_LIMIT     = int(os.environ.get("GENERATION_JOB_LIMIT", 500))

    # ── Rate limiting (Flask-Limiter) ────────────────────────────────────────
    RATELIMIT_DEFAULT      = os.environ.get("RATELIMIT_DEFAULT", "300 per minute")
    RATELIMIT_STORAGE_URI  = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")
    GENERATION_RATE_LIMIT  = os.environ.get("GENERATION_RATE_LIMIT", "20 per minute")

    # ── Social features ──────────────────────────────────────────────────────
    NOTIFICATION_FANOUT_INLINE  = _bool("NOTIFICATION_FANOUT_INLINE", False)
    MESSAGE_STREAM_POLL_SECONDS = float(os.environ.get("MESSAGE_STREAM_POLL_SECONDS", 1.0))
    MESSAGE_STREAM_MAX_SECONDS  = float(os.environ.get("MESSAGE_STREAM_MAX_SECONDS", 55))
    WRITE_FAILURE_BUFFER        = int(os.environ.get("WRITE_FAILURE_BUFFER", 100))
    FEED_PAGE_SIZE              = int(os.environ.get("FEED_PAGE_SIZE", 15))
    DEFAULT_ACCENT_COLOR        = "#00BFFF"
    DEFAULT_BIO                 = "Just joined!"

    # ── Outgoing mail (volunteer applications) ───────────────────────────────
    MAIL_SERVER         = os.environ.get("MAIL_SERVER", "")
    MAIL_PORT           = int(os.environ.get("MAIL_PORT", 587))
    MAIL_USE_TLS        = _bool("MAIL_USE_TLS", True)
    MAIL_USERNAME       = os.environ.get("MAIL_USERNAME", "")
    MAIL_PASSWORD       = os.environ.get("MAIL_PASSWORD", "")
    MAIL_FROM           = os.environ.get("MAIL_FROM", "")
    MAIL_TIMEOUT        = float(os.environ.get("MAIL_TIMEOUT", 10))
    VOLUNTEER_NOTIFY_TO = os.environ.get("VOLUNTEER_NOTIFY_TO", "")

    START_SCHEDULER  = _bool("START_SCHEDULER", True)
    TALISMAN_ENABLED = False


class DevelopmentConfig(Config):
    DEBUG = True


class TestingConfig(Config):
    TESTING                    = True
    SQLALCHEMY_DATABASE_URI    = "sqlite:///:memory:"
    WTF_CSRF_ENABLED           = False
    RATELIMIT_ENABLED          = False
    NOTIFICATION_FANOUT_INLINE = True
    START_SCHEDULER            = False
    MESSAGE_STREAM_POLL_SECONDS = 0.0
    MESSAGE_STREAM_MAX_SECONDS  = 0.0
    GENERATION_SERVICE_URL     = "http://generation.test"


class ProductionConfig(Config):
    SESSION_COOKIE_SECURE   = True
    REMEMBER_COOKIE_SECURE  = True
    SESSION_COOKIE_HTTPONLY = True
    TALISMAN_ENABLED        = _bool("TALISMAN_ENABLED", True)
    TALISMAN_CONFIG         = {"content_security_policy": None, "force_https": True}


config = {
    "development": DevelopmentConfig,
    "testing":     TestingConfig,
    "production":  ProductionConfig,
    "default":     DevelopmentConfig,
}
