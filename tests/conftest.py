from decimal import Decimal

import pytest
from flask_jwt_extended import create_access_token

from storefront import create_app
from storefront.config import TestConfig
from storefront.extensions import db
from storefront.model import Product, ProductVariant, Promotion, StoreSetting
from storefront.model.setting import FREE_SHIPPING_THRESHOLD_KEY


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_headers(app):
    token = create_access_token(identity="tester", additional_claims={"role": "admin"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def threshold(app):
    """Free shipping from 69 JOD, stored in the settings table."""
    db.session.add(StoreSetting(key=FREE_SHIPPING_THRESHOLD_KEY, value_number=Decimal("69.00")))
    db.session.commit()
    return Decimal("69.00")


@pytest.fixture
def make_product(app):
    def _make(slug, price, category_key=None, is_active=True, name_en=None):
        p = Product(slug=slug, price_jod=Decimal(str(price)), category_key=category_key,
                    is_active=is_active, name_en=name_en or slug)
        db.session.add(p)
        db.session.commit()
        return p
    return _make


@pytest.fixture
def make_variant(app):
    def _make(product, label, price, is_default=False, is_active=True, sort_order=0):
        v = ProductVariant(product_id=product.id, label=label, price_jod=Decimal(str(price)),
                           is_default=is_default, is_active=is_active, sort_order=sort_order)
        db.session.add(v)
        db.session.commit()
        return v
    return _make


@pytest.fixture
def make_promo(app):
    def _make(**kw):
        kw.setdefault("promo_kind", "CODE")
        kw.setdefault("discount_type", "PERCENT")
        kw.setdefault("discount_value", Decimal("10"))
        kw.setdefault("is_active", True)
        kw.setdefault("used_count", 0)
        kw.setdefault("priority", 0)
        kw["discount_value"] = Decimal(str(kw["discount_value"]))
        p = Promotion(**kw)
        db.session.add(p)
        db.session.commit()
        return p
    return _make
