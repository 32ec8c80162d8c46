"""
Mail bootstrap: the MAIL_* block from .env is tidied up before
Flask-Mail reads it.
"""
from flask import Flask

from bmsstore.extensions import init_mail


def _app(**cfg):
    app = Flask("mail_config_test")
    app.config.update(cfg)
    init_mail(app)
    return app


def test_url_style_server_is_reduced_to_hostname():
    app = _app(MAIL_SERVER="smtps://mail.bmsstore.test:465/", MAIL_USE_SSL="true", MAIL_PORT=None)
    assert app.config["MAIL_SERVER"] == "mail.bmsstore.test"
    assert app.config["MAIL_PORT"] == 465
    assert app.config["MAIL_SUPPRESS_SEND"] is False
    assert "mail" in app.extensions


def test_ssl_wins_over_starttls():
    app = _app(MAIL_SERVER="smtp.bmsstore.test", MAIL_USE_SSL=True, MAIL_USE_TLS=True, MAIL_PORT="abc")
    assert app.config["MAIL_USE_SSL"] is True
    assert app.config["MAIL_USE_TLS"] is False
    assert app.config["MAIL_PORT"] == 465


def test_starttls_port_and_explicit_port():
    assert _app(MAIL_SERVER="smtp.bmsstore.test", MAIL_USE_TLS="yes").config["MAIL_PORT"] == 587
    assert _app(MAIL_SERVER="smtp.bmsstore.test", MAIL_PORT="2525").config["MAIL_PORT"] == 2525


def test_missing_server_suppresses_sending():
    app = _app(MAIL_SERVER="", MAIL_USERNAME=None, ORDER_NOTIFY_EMAIL="owner@bmsstore.test")
    assert app.config["MAIL_SUPPRESS_SEND"] is True
    assert app.config["MAIL_DEFAULT_SENDER"] == "owner@bmsstore.test"
