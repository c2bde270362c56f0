import os

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def _flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() not in ("0", "false", "no")


class Config:
    # --------------------------
    # 🔹 Flask Configuration
    # --------------------------
    SECRET_KEY = os.environ.get("SECRET_KEY", "spp-dev-secret")
    PROPAGATE_EXCEPTIONS = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = os.environ.get("SESSION_COOKIE_SAMESITE", "Lax")
    SESSION_COOKIE_SECURE = _flag("SESSION_COOKIE_SECURE", "0")
    PERMANENT_SESSION_LIFETIME = int(os.environ.get("SESSION_LIFETIME_SECONDS", "86400"))  # 24 hours
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
    # Trust X-Forwarded-* headers when running behind a reverse proxy
    TRUST_PROXY = _flag("TRUST_PROXY", "0")
    MAX_CONTENT_LENGTH = int(os.environ.get("MAX_UPLOAD_MB", "100")) * 1024 * 1024

    # --------------------------
    # 🔹 Database (SQLAlchemy)
    # --------------------------
    # Backups copy the database file, so SQLite is the supported engine
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "SQLALCHEMY_DATABASE_URI",
        "sqlite:///" + os.path.join(BASE_DIR, "instance", "spp.db"),
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    AUTO_CREATE_TABLES = _flag("AUTO_CREATE_TABLES", "1")

    # --------------------------
    # 🔹 Backups
    # --------------------------
    BACKUP_DIRECTORY = os.environ.get("BACKUP_DIRECTORY", os.path.join(os.getcwd(), "backups"))
    BACKUP_LIST_LIMIT = int(os.environ.get("BACKUP_LIST_LIMIT", "20"))
    STATS_MAX_WORKERS = int(os.environ.get("STATS_MAX_WORKERS", "4"))

    # --------------------------
    # 🔹 Payments
    # --------------------------
    # Receipt numbers; {nomor} is the day's running count
    KUITANSI_FORMAT = os.environ.get("KUITANSI_FORMAT", "KWT/{tahun}/{bulan}/{tanggal}/{nomor}")

    # --------------------------
    # 🔹 Rate limiting (Flask-Limiter)
    # --------------------------
    RATELIMIT_ENABLED = _flag("RATELIMIT_ENABLED", "1")
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")
    LOGIN_RATE_LIMIT = os.environ.get("LOGIN_RATE_LIMIT", "10 per minute")

    # --------------------------
    # 🔹 Other App Constants
    # --------------------------
    APP_NAME = os.environ.get("APP_NAME", "SPP Sekolah")
