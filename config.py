import os

basedir = os.path.abspath(os.path.dirname(__file__))


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-production")

    # Database: use DATABASE_URL from environment, fallback to SQLite for local dev
    _db_url = os.environ.get("DATABASE_URL", f"sqlite:///{os.path.join(basedir, 'instance', 'esg_portal.db')}")
    # Heroku-style URLs use postgres:// but SQLAlchemy requires postgresql://
    if _db_url.startswith("postgres://"):
        _db_url = _db_url.replace("postgres://", "postgresql://", 1)
    SQLALCHEMY_DATABASE_URI = _db_url
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
        "pool_size": 5,
        "max_overflow": 10,
    } if "DATABASE_URL" in os.environ else {}

    UPLOAD_FOLDER = os.path.join(basedir, "instance", "evidence")
    MAX_CONTENT_LENGTH = 25 * 1024 * 1024  # 25 MB max evidence upload
    ALLOWED_EXTENSIONS = {"pdf", "doc", "docx", "xls", "xlsx", "csv", "png", "jpg", "jpeg", "txt"}

    # Bearer tokens
    TOKEN_MAX_AGE = int(os.environ.get("TOKEN_MAX_AGE", 7 * 24 * 3600))

    # Seed account created on first start
    ADMIN_EMAIL = os.environ.get("ADMIN_EMAIL", "admin@example.com")
    ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "admin1234")

    # {admin email: plan} - lets an admin preview another plan's entitlements
    ADMIN_PLAN_OVERRIDES = {}

    # Evidence expiring within this many days is flagged
    EXPIRY_WARNING_DAYS = 30
