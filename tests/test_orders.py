from decimal import Decimal

import pytest
from sqlalchemy import update

from storefront import create_app
from storefront.config import TestConfig
from storefront.extensions import db
from storefront.model import Order, Product, Promotion
from storefront.services import order_service

CUSTOMER = {"name": "Lina", "phone": "0790000000", "email": "lina@example.com"}
SHIPPING = {"city": "Amman", "address": "Rainbow St 1"}


@pytest.fixture
def calm(make_product, threshold):
    return make_product("nivran-calm-100ml", "18.00", category_key="perfume")


def checkout(client, **overrides):
    body = {
        "items": [{"slug": "nivran-calm-100ml", "qty": 1}],
        "discountMode": "NONE",
        "locale": "en",
        "customer": CUSTOMER,
        "shipping": SHIPPING,
    }
    body.update(overrides)
    return client.post("/api/orders", json=body)


def test_create_order_snapshots_server_totals(client, calm):
    r = checkout(client, totals={"totalJod": 1.0}, items=[{"slug": "nivran-calm-100ml", "qty": 2, "priceJod": 0.5}])
    assert r.status_code == 200
    body = r.get_json()
    assert body["ok"] is True
    assert body["status"] == "PENDING_PAYMENT"
    assert body["totals"]["totalJod"] == 39.5
    assert body["discount"] == {"source": None, "code": None, "promotionId": None}

    order = Order.query.filter_by(cart_id=body["cartId"]).one()
    assert order.total_jod == Decimal("39.50")
    assert order.amount == Decimal("39.50")
    assert order.shipping_country == "Jordan"
    assert order.items[0]["unit_price_jod"] == 18.0
    assert order.items[0]["qty"] == 2


def test_order_totals_match_quote(client, calm, make_promo):
    make_promo(code="CALM10", discount_value=10)
    quoted = client.post("/api/pricing/quote", json={
        "items": [{"slug": "nivran-calm-100ml", "qty": 1}], "discountMode": "CODE", "promoCode": "CALM10",
    }).get_json()["quote"]["totals"]
    body = checkout(client, discountMode="CODE", promoCode="CALM10").get_json()
    assert body["totals"] == quoted
    assert body["discount"]["code"] == "CALM10"


def test_cod_status(client, calm):
    r = checkout(client, paymentMethod="cod")
    # the order status is a body field, never the HTTP status
    assert r.status_code == 200
    assert r.get_json()["status"] == "PENDING_COD_CONFIRM"


@pytest.mark.parametrize("customer, shipping", [
    ({**CUSTOMER, "name": ""}, SHIPPING),
    ({**CUSTOMER, "email": "no-at-sign"}, SHIPPING),
    (CUSTOMER, {"city": "Amman"}),
])
def test_missing_fields(client, calm, customer, shipping):
    r = checkout(client, customer=customer, shipping=shipping)
    assert r.status_code == 400
    assert r.get_json()["reason"] == "MISSING_FIELDS"
    assert Order.query.count() == 0


def test_no_items(client, calm):
    r = checkout(client, items=[])
    assert r.status_code == 400
    assert r.get_json()["reason"] == "NO_ITEMS"


def test_code_redemption_counts_usage(client, calm, make_promo):
    p = make_promo(code="CALM10", usage_limit=5)
    assert checkout(client, discountMode="CODE", promoCode="CALM10").status_code == 200
    db.session.expire_all()
    assert db.session.get(Promotion, p.id).used_count == 1


def test_auto_promotion_does_not_count_usage(client, calm, make_promo):
    p = make_promo(promo_kind="AUTO", discount_type="FIXED", discount_value=2)
    body = checkout(client, discountMode="AUTO").get_json()
    assert body["discount"]["source"] == "AUTO"
    assert body["totals"]["discountJod"] == 2.0
    db.session.expire_all()
    assert db.session.get(Promotion, p.id).used_count == 0


def test_invalid_code_is_a_hard_stop(client, calm):
    r = checkout(client, discountMode="CODE", promoCode="NOPE")
    assert r.status_code == 400
    assert r.get_json()["reason"] == "PROMO_NOT_FOUND"
    assert "quote" not in r.get_json()
    assert Order.query.count() == 0


def test_code_in_auto_mode_is_rejected(client, calm):
    r = checkout(client, discountMode="AUTO", promoCode="CALM10")
    assert r.status_code == 400
    assert r.get_json()["reason"] == "DISCOUNT_MODE_UNSUPPORTED"


def test_single_use_code_only_redeems_once(client, calm, make_promo):
    p = make_promo(code="ONCE", usage_limit=1)
    first = checkout(client, discountMode="CODE", promoCode="ONCE")
    second = checkout(client, discountMode="CODE", promoCode="ONCE")
    assert first.status_code == 200
    assert second.status_code == 400
    assert second.get_json()["reason"] == "PROMO_USAGE_LIMIT"
    assert Order.query.count() == 1
    db.session.expire_all()
    assert db.session.get(Promotion, p.id).used_count == 1


@pytest.fixture
def file_app(tmp_path):
    db_path = tmp_path / "store.db"

    class FileConfig(TestConfig):
        @staticmethod
        def init_app(app):
            app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{db_path}"

    app = create_app(FileConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


def test_usage_taken_between_quote_and_commit(file_app, monkeypatch):
    db.session.add(Product(slug="nivran-calm-100ml", price_jod=Decimal("18.00"), is_active=True))
    promo = Promotion(promo_kind="CODE", code="ONCE", discount_type="PERCENT",
                      discount_value=Decimal("10"), usage_limit=1, used_count=0, is_active=True)
    db.session.add(promo)
    db.session.commit()
    promo_id = promo.id

    real_build_quote = order_service.build_quote

    def quote_then_lose_last_redemption(*args, **kwargs):
        q = real_build_quote(*args, **kwargs)
        # a concurrent checkout commits the last redemption on its own connection
        with db.engine.begin() as conn:
            conn.execute(update(Promotion).where(Promotion.id == promo_id).values(used_count=1))
        return q

    monkeypatch.setattr(order_service, "build_quote", quote_then_lose_last_redemption)
    r = checkout(file_app.test_client(), discountMode="CODE", promoCode="ONCE")

    assert r.status_code == 400
    body = r.get_json()
    assert body["reason"] == "PROMO_USAGE_LIMIT"
    assert body["error"] == "promo code usage limit reached"
    assert Order.query.count() == 0
    db.session.expire_all()
    assert db.session.get(Promotion, promo_id).used_count == 1


def test_placed_order_ignores_later_catalog_changes(client, calm, make_promo):
    make_promo(code="CALM10", discount_value=10)
    cart_id = checkout(client, discountMode="CODE", promoCode="CALM10").get_json()["cartId"]

    product = Product.query.filter_by(slug="nivran-calm-100ml").one()
    product.price_jod = Decimal("99.00")
    Promotion.query.filter_by(code="CALM10").one().discount_value = Decimal("50")
    db.session.commit()

    r = client.get(f"/api/orders/{cart_id}")
    assert r.status_code == 200
    order = r.get_json()["order"]
    assert order["totals"]["totalJod"] == 19.7
    assert order["items"][0]["unit_price_jod"] == 18.0
    assert order["discount"]["code"] == "CALM10"


def test_unknown_order(client):
    assert client.get("/api/orders/nope").status_code == 404
