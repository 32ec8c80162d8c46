# bmsstore/auth/password_reset_routes.py
from flask import current_app, jsonify
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired

from bmsstore.api.utils.email import send_email
from bmsstore.api.utils.http import get_payload, json_error
from bmsstore.auth.customer_routes import MIN_PASSWORD, customer_auth_bp
from bmsstore.auth.login_routes import auth_bp
from bmsstore.extensions import db
from bmsstore.models import AdminUser, Customer, WebsiteConfig

ACCOUNT_MODELS = {"customer": Customer, "admin": AdminUser}

# ── Helpers ──────────────────────────────────────────────────────────────────

def _get_serializer() -> URLSafeTimedSerializer:
    secret = current_app.config.get("SECRET_KEY")
    if not secret:
        raise RuntimeError("SECRET_KEY is not set, reset tokens cannot be generated.")
    salt = current_app.config.get("PASSWORD_RESET_SALT", "bms-password-reset")
    return URLSafeTimedSerializer(secret_key=secret, salt=salt)


def _gen_token(kind: str, user_id: int | str) -> str:
    s = _get_serializer()
    return s.dumps({"kind": kind, "uid": str(user_id)})


def _load_token(token: str, max_age_seconds: int = 3600) -> tuple[str, str]:
    s = _get_serializer()
    data = s.loads(token, max_age=max_age_seconds)
    return data.get("kind"), data.get("uid")


def _mail_sender() -> str | None:
    """MAIL_DEFAULT_SENDER, else MAIL_USERNAME."""
    sender = current_app.config.get("MAIL_DEFAULT_SENDER")
    if not sender:
        sender = current_app.config.get("MAIL_USERNAME")
    return sender


def _reset_url(kind: str, token: str) -> str:
    base = current_app.config.get("STORE_URL", "").rstrip("/")
    path = "/admin/reset-password" if kind == "admin" else "/reset-password"
    return f"{base}{path}?token={token}"


# ── Forgotten password ───────────────────────────────────────────────────────

def _forgot(kind: str):
    data = get_payload()
    email = (data.get("email") or "").strip().lower()
    current_app.logger.info("[FORGOT] %s identifier=%r", kind, email)
    if not email:
        return json_error("E-mail is required", 400)

    model = ACCOUNT_MODELS[kind]
    user = model.query.filter(db.func.lower(model.email) == email).first()
    generic = {"ok": True, "message": "If the account exists, we have sent a reset link."}

    # never reveal whether the account exists
    if not user or (kind == "customer" and not user.password_hash):
        current_app.logger.info("[FORGOT] user NOT FOUND -> generic answer")
        return jsonify(generic), 200

    reset_url = _reset_url(kind, _gen_token(kind, user.id))

    if current_app.config.get("MAIL_SUPPRESS_SEND", False):
        current_app.logger.warning("[FORGOT] MAIL_SUPPRESS_SEND=True -> returning link instead of sending")
        return jsonify({**generic, "reset_url": reset_url}), 200

    store = WebsiteConfig.as_dict().get("store_name") or "BMS Store"
    body = (
        f"Hello {getattr(user, 'name', '') or 'there'},\n\n"
        f"we received a request to reset your {store} password. Open this link to choose a new one:\n\n"
        f"{reset_url}\n\n"
        "The link is valid for 1 hour. If you did not ask for this, ignore this e-mail.\n"
    )
    try:
        send_email(
            subject=current_app.config.get("PASSWORD_RESET_SUBJECT", "Reset your BMS Store password"),
            recipients=[user.email],
            body=body,
            sender=_mail_sender(),
        )
        current_app.logger.info("[FORGOT] reset mail sent to uid=%s", user.id)
    except Exception:
        current_app.logger.exception("[FORGOT] sending reset mail failed")
    return jsonify(generic), 200


def _reset(kind: str):
    data = get_payload()
    token = (data.get("token") or "").strip()
    password = data.get("password") or ""
    if not token:
        return json_error("Missing token", 400)
    if len(password) < MIN_PASSWORD:
        return json_error(f"Password must be at least {MIN_PASSWORD} characters", 422)

    try:
        token_kind, uid = _load_token(token)
    except SignatureExpired:
        return json_error("The reset link has expired", 400)
    except BadSignature:
        return json_error("The reset link is invalid", 400)

    if token_kind != kind:
        return json_error("The reset link is invalid", 400)
    user = db.session.get(ACCOUNT_MODELS[kind], int(uid)) if str(uid).isdigit() else None
    if not user:
        return json_error("Account not found", 404)

    user.set_password(password)
    db.session.commit()
    current_app.logger.info("[RESET] password changed for %s uid=%s", kind, user.id)
    return jsonify({"ok": True}), 200


@customer_auth_bp.post("/forgot")
def customer_forgot():
    return _forgot("customer")


@customer_auth_bp.post("/reset")
def customer_reset():
    return _reset("customer")


@auth_bp.post("/forgot")
def admin_forgot():
    return _forgot("admin")


@auth_bp.post("/reset")
def admin_reset():
    return _reset("admin")
