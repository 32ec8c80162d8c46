"""
Shared fixtures: a fresh app on a throwaway SQLite file per test,
a seeded catalog, and logged-in admin / customer clients.

Each request runs in its own app context (Flask-Login caches the user on
`g`), so tests open `app.app_context()` themselves when they need the DB.
"""
from decimal import Decimal

import pytest

from bmsstore.app import create_app
from bmsstore.config import Config
from bmsstore.extensions import db
from bmsstore.models import (
    AdminUser,
    Category,
    Inventory,
    Offer,
    Product,
    ProductDesign,
)

ADMIN_EMAIL = "admin@bmsstore.com"
ADMIN_PASSWORD = "BMS@2024"


@pytest.fixture
def app(tmp_path):
    class TestConfig(Config):
        TESTING = True
        SECRET_KEY = "test-secret"
        SQLALCHEMY_DATABASE_URI = "sqlite:///" + str(tmp_path / "test.db").replace("\\", "/")
        STORAGE_ROOT = str(tmp_path / "storage")
        MAIL_SUPPRESS_SEND = True
        MAIL_DEFAULT_SENDER = "shop@bmsstore.test"
        ORDER_NOTIFY_EMAIL = "owner@bmsstore.test"
        AI_GATEWAY_API_KEY = "test-key"
        CORS_ORIGINS = ["http://localhost:5173"]
        WHATSAPP_TOKEN = None
        WHATSAPP_PHONE_NUMBER_ID = None
        BCRYPT_LOG_ROUNDS = 4

    application = create_app(TestConfig)
    with application.app_context():
        db.create_all()
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def catalog(app):
    """Two categories, three products, one design. Returns plain ids."""
    with app.app_context():
        women = Category(name="Women", sort_order=0, is_active=True)
        hidden = Category(name="Archive", sort_order=5, is_active=False)
        db.session.add_all([women, hidden])
        db.session.flush()
        sarees = Category(name="Sarees", parent_id=women.id, sort_order=0, is_active=True)
        db.session.add(sarees)
        db.session.flush()

        saree = Product(code="SAR-1", name="Silk Saree", category_id=sarees.id,
                        actual_price=Decimal("1500.00"), selling_price=Decimal("1000.00"),
                        stock_quantity=5, is_active=True, images=[], similar_products=[])
        kurti = Product(code="KUR-1", name="Cotton Kurti", category_id=women.id,
                        actual_price=Decimal("500.00"), selling_price=Decimal("250.00"),
                        stock_quantity=10, is_active=True, images=[], similar_products=[])
        sold_out = Product(code="OUT-1", name="Sold Out Dupatta", category_id=women.id,
                           selling_price=Decimal("300.00"), stock_quantity=0, is_active=True,
                           images=[], similar_products=[])
        db.session.add_all([saree, kurti, sold_out])
        db.session.flush()

        design = ProductDesign(parent_product_id=saree.id, design_code="SAR-1-RED",
                               design_name="Red border", additional_price=Decimal("150.00"), is_active=True)
        db.session.add(design)
        db.session.add(Inventory(product_id=saree.id, quantity_in_stock=5, reorder_level=2))
        db.session.commit()

        return {
            "women": women.id,
            "sarees": sarees.id,
            "hidden": hidden.id,
            "saree": saree.id,
            "kurti": kurti.id,
            "sold_out": sold_out.id,
            "design": design.id,
        }


@pytest.fixture
def make_offer(app):
    def _make(**fields):
        fields.setdefault("title", "Test offer")
        fields.setdefault("offer_type", "percentage")
        fields.setdefault("discount_value", Decimal("10"))
        fields.setdefault("is_active", True)
        fields.setdefault("used_count", 0)
        product_ids = fields.pop("product_ids", None)
        with app.app_context():
            offer = Offer(**fields)
            if product_ids:
                offer.products = Product.query.filter(Product.id.in_(product_ids)).all()
            db.session.add(offer)
            db.session.commit()
            return offer.id
    return _make


@pytest.fixture
def admin_client(app):
    with app.app_context():
        admin = AdminUser(email=ADMIN_EMAIL, name="Admin", role="admin", active=True)
        admin.set_password(ADMIN_PASSWORD)
        db.session.add(admin)
        db.session.commit()
    c = app.test_client()
    resp = c.post("/admin/api/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert resp.status_code == 200, resp.get_json()
    return c


@pytest.fixture
def customer_client(app):
    c = app.test_client()
    resp = c.post("/api/auth/signup", json={
        "name": "Asha Verma",
        "email": "asha@example.com",
        "password": "secret123",
        "phone": "9876543210",
    })
    assert resp.status_code == 201, resp.get_json()
    return c
