# bmsstore/config.py
import os
from dotenv import load_dotenv

BASE_DIR = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(BASE_DIR, ".env"))
load_dotenv()

INSTANCE_DIR = os.path.join(BASE_DIR, "instance")


def _env(key: str, default=None):
    v = os.getenv(key)
    return v if v not in (None, "", "None") else default


def _env_bool(key: str, default: bool = False) -> bool:
    v = os.getenv(key)
    if v in (None, "", "None"):
        return default
    return str(v).strip().lower() in ("1", "true", "t", "yes", "y", "on")


def _env_list(key: str, default: str = "") -> list[str]:
    raw = _env(key, default) or ""
    return [part.strip() for part in raw.split(",") if part.strip()]


def _resolve_sqlite_uri(db_url: str | None) -> str:
    if not db_url:
        os.makedirs(INSTANCE_DIR, exist_ok=True)
        db_path = os.path.join(INSTANCE_DIR, "bmsstore.db")
        return "sqlite:///" + db_path.replace("\\", "/")

    if db_url.startswith("sqlite:///"):
        raw_path = db_url.replace("sqlite:///", "", 1)
        if not os.path.isabs(raw_path):
            raw_path = os.path.join(BASE_DIR, raw_path)
        db_path = os.path.normpath(raw_path)
        os.makedirs(os.path.dirname(db_path), exist_ok=True)
        return "sqlite:///" + db_path.replace("\\", "/")

    # Heroku-style URLs
    if db_url.startswith("postgres://"):
        return db_url.replace("postgres://", "postgresql://", 1)

    return db_url


class Config:
    SECRET_KEY = _env("SECRET_KEY", "dev-please-change-me")

    SQLALCHEMY_DATABASE_URI = _resolve_sqlite_uri(_env("DATABASE_URL"))
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_AS_ASCII = False
    MAX_CONTENT_LENGTH = int(_env("MAX_CONTENT_LENGTH", 50 * 1024 * 1024))

    # Storage buckets live under STORAGE_ROOT/<bucket>/
    STORAGE_ROOT = _env("STORAGE_ROOT", os.path.join(BASE_DIR, "static", "storage"))
    STORE_URL = _env("STORE_URL", "http://localhost:5173")
    CORS_ORIGINS = _env_list("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173")

    MAIL_SERVER = _env("MAIL_SERVER", "smtp.gmail.com")
    MAIL_PORT = _env("MAIL_PORT")
    MAIL_USE_SSL = _env_bool("MAIL_USE_SSL", True)
    MAIL_USE_TLS = _env_bool("MAIL_USE_TLS", False)
    MAIL_USERNAME = _env("MAIL_USERNAME")
    MAIL_PASSWORD = _env("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = _env("MAIL_DEFAULT_SENDER", _env("MAIL_USERNAME"))
    MAIL_SUPPRESS_SEND = _env_bool("MAIL_SUPPRESS_SEND", False)
    MAIL_DEBUG = _env_bool("MAIL_DEBUG", False)
    ORDER_NOTIFY_EMAIL = _env("ORDER_NOTIFY_EMAIL")

    PASSWORD_RESET_SALT = _env("PASSWORD_RESET_SALT", "bms-password-reset")
    PASSWORD_RESET_SUBJECT = _env("PASSWORD_RESET_SUBJECT", "Reset your BMS Store password")

    # Demo admin seeded by `flask seed-demo`
    ADMIN_EMAIL = _env("ADMIN_EMAIL", "admin@bmsstore.com")
    ADMIN_PASSWORD = _env("ADMIN_PASSWORD", "BMS@2024")

    GUEST_SESSION_HEADER = _env("GUEST_SESSION_HEADER", "X-Session-Id")

    AI_GATEWAY_URL = _env("AI_GATEWAY_URL", "https://ai.gateway.lovable.dev/v1/chat/completions")
    AI_GATEWAY_API_KEY = _env("AI_GATEWAY_API_KEY", _env("LOVABLE_API_KEY"))
    AI_MODEL = _env("AI_MODEL", "google/gemini-2.5-flash")
    AI_TIMEOUT = int(_env("AI_TIMEOUT", 30))

    WHATSAPP_TOKEN = _env("WHATSAPP_TOKEN")
    WHATSAPP_PHONE_NUMBER_ID = _env("WHATSAPP_PHONE_NUMBER_ID")
    WHATSAPP_COUNTRY_CODE = _env("WHATSAPP_COUNTRY_CODE", "91")

    PROFIT_MARGIN = float(_env("PROFIT_MARGIN", 0.30))
