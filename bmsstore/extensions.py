# bmsstore/extensions.py
from __future__ import annotations

from urllib.parse import urlsplit

from flask import jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_bcrypt import Bcrypt
from flask_migrate import Migrate
from flask_cors import CORS
from flask_mail import Mail

# Keep extension instances in one place to avoid circular imports
db = SQLAlchemy()
login_manager = LoginManager()
bcrypt = Bcrypt()
migrate = Migrate()
cors = CORS()
mail = Mail()


@login_manager.user_loader
def load_user(user_id):
    """Session ids look like 'admin:3' or 'customer:17'."""
    # Lazy import to avoid circular dependency when loading the models
    from bmsstore.models import AdminUser, Customer

    kind, _, raw_id = str(user_id).partition(":")
    model = {"admin": AdminUser, "customer": Customer}.get(kind)
    if model is None:
        return None
    try:
        user = db.session.get(model, int(raw_id))
    except (TypeError, ValueError):
        return None
    if user is None or not user.is_active:
        return None
    return user


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"ok": False, "error": "Login required"}), 401


SMTP_PORTS = {"ssl": 465, "starttls": 587, "plain": 25}


def _flag(value) -> bool:
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _smtp_host(raw) -> str:
    """'smtps://mail.example.com:465/' -> 'mail.example.com'"""
    text = str(raw or "").strip()
    if not text:
        return ""
    return urlsplit(text if "//" in text else "//" + text).hostname or ""


def init_mail(app):
    """
    Normalise the MAIL_* block before Flask-Mail reads it.

    Order and reset e-mails are best-effort, so a half-filled .env is
    repaired here: SSL wins over STARTTLS, a missing or bad port follows
    the transport, and with no SMTP host sending is suppressed.
    """
    cfg = app.config

    cfg["MAIL_USE_SSL"] = _flag(cfg.get("MAIL_USE_SSL"))
    cfg["MAIL_USE_TLS"] = _flag(cfg.get("MAIL_USE_TLS")) and not cfg["MAIL_USE_SSL"]
    transport = "ssl" if cfg["MAIL_USE_SSL"] else ("starttls" if cfg["MAIL_USE_TLS"] else "plain")
    try:
        cfg["MAIL_PORT"] = int(cfg.get("MAIL_PORT"))
    except (TypeError, ValueError):
        cfg["MAIL_PORT"] = SMTP_PORTS[transport]

    cfg["MAIL_DEFAULT_SENDER"] = (
        cfg.get("MAIL_DEFAULT_SENDER") or cfg.get("MAIL_USERNAME") or cfg.get("ORDER_NOTIFY_EMAIL")
    )

    host = _smtp_host(cfg.get("MAIL_SERVER"))
    cfg["MAIL_SUPPRESS_SEND"] = _flag(cfg.get("MAIL_SUPPRESS_SEND"))
    if host:
        cfg["MAIL_SERVER"] = host
    elif not cfg["MAIL_SUPPRESS_SEND"]:
        cfg["MAIL_SUPPRESS_SEND"] = True
        app.logger.warning("MAIL_SERVER is empty, e-mails will not be sent")

    app.logger.info(
        "Mail: %s:%s over %s, sender=%s%s",
        cfg.get("MAIL_SERVER"),
        cfg["MAIL_PORT"],
        transport,
        cfg["MAIL_DEFAULT_SENDER"],
        " (suppressed)" if cfg["MAIL_SUPPRESS_SEND"] else "",
    )

    mail.init_app(app)
