import logging
import os

logger = logging.getLogger(__name__)


class Config:
    """Base configuration. Shared across all environments."""

    # --- Required ---
    SECRET_KEY = os.environ.get("SECRET_KEY")

    # Handle DATABASE_URL: some PaaS providers (Railway, Heroku) use
    # "postgres://" which SQLAlchemy 1.4+ doesn't accept.
    _db_url = os.environ.get("DATABASE_URL", "")
    if _db_url.startswith("postgres://"):
        _db_url = _db_url.replace("postgres://", "postgresql://", 1)
    SQLALCHEMY_DATABASE_URI = _db_url or None

    # --- Trello (card mirror) ---
    # Board and list are provisioned by hand; we only need the list id.
    TRELLO_API_KEY = os.environ.get("TRELLO_API_KEY")
    TRELLO_TOKEN = os.environ.get("TRELLO_TOKEN")
    TRELLO_LIST_ID = os.environ.get("TRELLO_LIST_ID")
    TRELLO_API_BASE = os.environ.get("TRELLO_API_BASE", "https://api.trello.com/1")
    TRELLO_TIMEOUT = float(os.environ.get("TRELLO_TIMEOUT", 15))

    # --- Supabase Storage (reference images) ---
    SUPABASE_URL = os.environ.get("SUPABASE_URL")                # e.g. https://xyz.supabase.co
    SUPABASE_SERVICE_KEY = os.environ.get("SUPABASE_SERVICE_KEY") # service_role key for storage
    SUPABASE_STORAGE_BUCKET = os.environ.get("SUPABASE_STORAGE_BUCKET", "reference-images")
    STORAGE_TIMEOUT = float(os.environ.get("STORAGE_TIMEOUT", 30))

    # --- Reviewer API ---
    # Optional shared secret for status/delete/sync routes. Left unset when
    # an upstream auth proxy already guards the reviewer endpoints.
    REVIEWER_API_KEY = os.environ.get("REVIEWER_API_KEY")

    # --- Rate limiting ---
    SUBMIT_RATE_LIMIT = os.environ.get("SUBMIT_RATE_LIMIT", "30 per hour")

    # --- SQLAlchemy ---
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    MAX_CONTENT_LENGTH = 60 * 1024 * 1024  # whole multipart body

    @staticmethod
    def validate():
        """Fail fast if required env vars are missing."""
        required = ["SECRET_KEY", "DATABASE_URL"]
        missing = [v for v in required if not os.environ.get(v)]
        if missing:
            raise RuntimeError(
                f"Missing required environment variables: {', '.join(missing)}"
            )

        # Card sync is best-effort, so missing Trello creds only warn
        trello = ["TRELLO_API_KEY", "TRELLO_TOKEN", "TRELLO_LIST_ID"]
        missing_trello = [v for v in trello if not os.environ.get(v)]
        if missing_trello:
            logger.warning(
                f"Trello sync disabled, missing: {', '.join(missing_trello)}"
            )


class DevConfig(Config):
    """Local development."""

    DEBUG = True
    SECRET_KEY = Config.SECRET_KEY or "dev-secret-key"
    SQLALCHEMY_DATABASE_URI = Config.SQLALCHEMY_DATABASE_URI or "sqlite:///design_desk.db"


class TestConfig(Config):
    """Testing — in-memory SQLite, no external services."""

    TESTING = True
    DEBUG = True
    SECRET_KEY = "test-secret-key-not-for-production"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    TRELLO_API_KEY = None
    TRELLO_TOKEN = None
    TRELLO_LIST_ID = None
    TRELLO_API_BASE = "https://api.trello.test/1"
    SUPABASE_URL = None
    SUPABASE_SERVICE_KEY = None
    REVIEWER_API_KEY = None
    RATELIMIT_ENABLED = False  # disable rate limiting in tests

    @staticmethod
    def validate():
        """Skip validation in test mode — everything is hardcoded."""
        pass


class ProdConfig(Config):
    """Production."""

    DEBUG = False


config_by_name = {
    "development": DevConfig,
    "production": ProdConfig,
    "testing": TestConfig,
}
