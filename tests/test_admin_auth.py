"""
Admin and customer sessions, the admin guard on /admin/api, password
reset tokens and the seed/create-admin CLI commands.
"""
from bmsstore.extensions import db
from bmsstore.models import AdminUser, Category, Offer, Product

ADMIN_EMAIL = "admin@bmsstore.com"
ADMIN_PASSWORD = "BMS@2024"


# ----------------------------------------------------------------------
# Admin guard
# ----------------------------------------------------------------------

def test_admin_api_requires_login(client):
    resp = client.get("/admin/api/dashboard")
    assert resp.status_code == 401
    assert resp.get_json()["ok"] is False


def test_customer_session_is_not_admin(customer_client):
    assert customer_client.get("/admin/api/dashboard").status_code == 403
    assert customer_client.get("/admin/api/me").status_code == 403


def test_admin_login_logout(admin_client):
    me = admin_client.get("/admin/api/me").get_json()
    assert me["admin"]["email"] == ADMIN_EMAIL

    assert admin_client.get("/admin/api/dashboard").status_code == 200
    admin_client.post("/admin/api/logout")
    assert admin_client.get("/admin/api/dashboard").status_code == 401


def test_admin_login_rejects_bad_credentials(client, admin_client):
    resp = client.post("/admin/api/login", json={"email": ADMIN_EMAIL, "password": "wrong"})
    assert resp.status_code == 401
    assert client.post("/admin/api/login", json={"email": ADMIN_EMAIL}).status_code == 400


def test_inactive_admin_cannot_log_in(client, app, admin_client):
    with app.app_context():
        AdminUser.query.filter_by(email=ADMIN_EMAIL).one().active = False
        db.session.commit()
    resp = client.post("/admin/api/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert resp.status_code == 401


# ----------------------------------------------------------------------
# Customer accounts
# ----------------------------------------------------------------------

def test_signup_duplicate_and_login(client, customer_client):
    dup = client.post("/api/auth/signup", json={
        "name": "Other", "email": "ASHA@example.com", "password": "secret123",
    })
    assert dup.status_code == 409

    bad = client.post("/api/auth/login", json={"email": "asha@example.com", "password": "nope"})
    assert bad.status_code == 401
    good = client.post("/api/auth/login", json={"email": "asha@example.com", "password": "secret123"})
    assert good.status_code == 200
    assert client.get("/api/auth/me").get_json()["customer"]["name"] == "Asha Verma"


def test_signup_validation(client):
    short = client.post("/api/auth/signup", json={"name": "A", "email": "a@b.co", "password": "123"})
    assert short.status_code == 422
    no_email = client.post("/api/auth/signup", json={"name": "A", "email": "nope", "password": "123456"})
    assert no_email.status_code == 422


def test_profile_update_validates_pincode(customer_client):
    resp = customer_client.put("/api/auth/me", json={"pincode": "12"})
    assert resp.status_code == 422
    resp = customer_client.put("/api/auth/me", json={"pincode": "560001", "city": "Bengaluru"})
    assert resp.get_json()["customer"]["city"] == "Bengaluru"


def test_customer_password_reset_flow(client, customer_client):
    unknown = client.post("/api/auth/forgot", json={"email": "nobody@example.com"})
    assert unknown.status_code == 200
    assert "reset_url" not in unknown.get_json()

    resp = client.post("/api/auth/forgot", json={"email": "asha@example.com"})
    token = resp.get_json()["reset_url"].rsplit("token=", 1)[1]

    reset = client.post("/api/auth/reset", json={"token": token, "password": "newpass99"})
    assert reset.status_code == 200
    login = client.post("/api/auth/login", json={"email": "asha@example.com", "password": "newpass99"})
    assert login.status_code == 200


def test_reset_rejects_garbage_token(client):
    resp = client.post("/api/auth/reset", json={"token": "not-a-token", "password": "whatever1"})
    assert resp.status_code == 400


# ----------------------------------------------------------------------
# CLI
# ----------------------------------------------------------------------

def test_seed_demo_creates_admin_and_catalog(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["seed-demo"])
    assert result.exit_code == 0, result.output
    assert "Seeded 5 demo products" in result.output

    with app.app_context():
        admin = AdminUser.query.filter_by(email=app.config["ADMIN_EMAIL"]).one()
        assert admin.password_hash != app.config["ADMIN_PASSWORD"]
        assert admin.check_password(app.config["ADMIN_PASSWORD"])
        assert Product.query.count() == 5
        assert Category.query.count() == 6
        assert Offer.query.filter_by(coupon_code="WELCOME10").count() == 1

    again = runner.invoke(args=["seed-demo"])
    assert "skipped" in again.output


def test_create_admin_respects_force(app):
    runner = app.test_cli_runner()
    args = ["create-admin", "--email", "Ops@Example.com", "--password", "first-pass"]
    assert "created" in runner.invoke(args=args).output
    assert "already exists" in runner.invoke(args=args).output

    forced = runner.invoke(args=["create-admin", "--email", "ops@example.com", "--password", "second", "--force"])
    assert "reset" in forced.output
    with app.app_context():
        assert AdminUser.query.filter_by(email="ops@example.com").one().check_password("second")
