# bmsstore/app.py
import logging
import os

# Show INFO logs even outside the werkzeug access log
logging.basicConfig(level=logging.INFO)

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from bmsstore.config import Config

# Extensions
from bmsstore.extensions import db, login_manager, bcrypt, migrate, cors, init_mail

# Blueprints
from bmsstore.admin import admin_bp
from bmsstore.auth import auth_bp, customer_auth_bp
from bmsstore.api.routes.product_routes import api_products
from bmsstore.api.routes.review_routes import api_reviews
from bmsstore.api.routes.category_routes import api_categories
from bmsstore.api.routes.cart_routes import api_cart
from bmsstore.api.routes.wishlist_routes import api_wishlist
from bmsstore.api.routes.order_routes import order_bp
from bmsstore.api.routes.offer_routes import api_offers
from bmsstore.api.routes.trending_routes import api_trending
from bmsstore.api.routes.home_routes import api_home
from bmsstore.api.routes.chat_routes import api_chat
from bmsstore.api.routes.media_routes import api_media
from bmsstore.cli import register_cli
from bmsstore import models as _models  # noqa: F401


def create_app(config_object=None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object or Config)

    # Init extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    bcrypt.init_app(app)
    init_mail(app)

    guest_header = app.config.get("GUEST_SESSION_HEADER", "X-Session-Id")
    cors.init_app(
        app,
        resources={
            # the chat relay is called straight from the browser, from anywhere
            r"/api/ai-chat": {"origins": "*", "send_wildcard": True},
            r"/api/*": {
                "origins": app.config.get("CORS_ORIGINS") or [],
                "supports_credentials": True,
                "expose_headers": [guest_header],
            },
            r"/admin/api/*": {
                "origins": app.config.get("CORS_ORIGINS") or [],
                "supports_credentials": True,
            },
        },
        allow_headers=["Content-Type", "Authorization", "Idempotency-Key", guest_header],
    )

    os.makedirs(app.config["STORAGE_ROOT"], exist_ok=True)

    # Register blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(customer_auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(api_products)
    app.register_blueprint(api_reviews)
    app.register_blueprint(api_categories)
    app.register_blueprint(api_cart)
    app.register_blueprint(api_wishlist)
    app.register_blueprint(order_bp)
    app.register_blueprint(api_offers)
    app.register_blueprint(api_trending)
    app.register_blueprint(api_home)
    app.register_blueprint(api_chat)
    app.register_blueprint(api_media)

    register_cli(app)

    @app.errorhandler(HTTPException)
    def _http_error(e: HTTPException):
        # JSON everywhere under the API prefixes
        if request.path.startswith(("/api/", "/admin/api/")):
            return jsonify({"ok": False, "error": e.description or e.name}), e.code
        return e

    @app.errorhandler(Exception)
    def _unhandled(e: Exception):
        if isinstance(e, HTTPException):
            return _http_error(e)
        db.session.rollback()
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"ok": False, "error": "Internal server error"}), 500

    @app.get("/api/health")
    def health():
        return {"ok": True}, 200

    # Diagnostics: list all routes
    @app.get("/__routes")
    def __routes():
        lines = []
        for r in sorted(app.url_map.iter_rules(), key=lambda x: x.rule):
            methods = ",".join(
                sorted(m for m in r.methods if m in {"GET", "POST", "PUT", "DELETE", "PATCH"})
            )
            lines.append(f"{r.rule:45s} -> {r.endpoint} [{methods}]")
        return "<pre>" + "\n".join(lines) + "</pre>"

    return app
