import os
from pathlib import Path


BASE_DIR = Path(__file__).resolve().parent.parent


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "default-secret-key")
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", f"sqlite:///{BASE_DIR / 'linxify.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    BASE_URL = os.environ.get("BASE_URL", "http://localhost:8072").rstrip("/")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    RESEND_API_KEY = os.environ.get("RESEND_API_KEY", "")
    RESEND_API_URL = os.environ.get("RESEND_API_URL", "https://api.resend.com/emails")
    RESEND_FROM = os.environ.get("RESEND_FROM", "Linxify <no-reply@example.com>")
    EMAIL_TIMEOUT = float(os.environ.get("EMAIL_TIMEOUT", "10"))

    RESET_TOKEN_TTL_MINUTES = int(os.environ.get("RESET_TOKEN_TTL_MINUTES", "15"))
    RESET_TOKEN_SWEEP_INTERVAL_MINUTES = int(
        os.environ.get("RESET_TOKEN_SWEEP_INTERVAL_MINUTES", "60")
    )
    SCHEDULER_ENABLED = os.environ.get("SCHEDULER_ENABLED", "1") == "1"
    ARCHIVER_ENABLED = os.environ.get("ARCHIVER_ENABLED", "1") == "1"

    CONTENT_FETCH_TIMEOUT = float(os.environ.get("CONTENT_FETCH_TIMEOUT", "10"))
    CONTENT_MAX_BYTES = int(os.environ.get("CONTENT_MAX_BYTES", "2500000"))
    LINKS_PAGE_SIZE = int(os.environ.get("LINKS_PAGE_SIZE", "9"))
    LINKS_MAX_PAGE_SIZE = int(os.environ.get("LINKS_MAX_PAGE_SIZE", "100"))


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SCHEDULER_ENABLED = False
    ARCHIVER_ENABLED = False
    RESEND_API_KEY = ""
    BASE_URL = "http://linxify.test"
