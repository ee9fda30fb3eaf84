from decimal import Decimal

import pytest

from storefront import create_app
from storefront.config import Capabilities, TestConfig
from storefront.extensions import db
from storefront.model import StoreSetting
from storefront.model.setting import FREE_SHIPPING_THRESHOLD_KEY
from storefront.services.errors import InputError
from storefront.services.shipping_service import (
    read_free_shipping_threshold, shipping_for_subtotal, write_free_shipping_threshold,
)


@pytest.mark.parametrize("subtotal, has_items, threshold, expected", [
    ("69.00", True, "69", "0.00"),
    ("68.99", True, "69", "3.50"),
    ("500", True, "0", "3.50"),
    ("0", False, "69", "0.00"),
    ("10", False, "0", "0.00"),
])
def test_shipping_for_subtotal(app, subtotal, has_items, threshold, expected):
    fee = shipping_for_subtotal(Decimal(subtotal), has_items, Decimal(threshold))
    assert fee == Decimal(expected)


def test_threshold_from_settings(app, threshold):
    value = read_free_shipping_threshold()
    assert value.value == Decimal("69.00")
    assert value.degraded is False
    assert value.reason is None


def test_threshold_not_set_uses_default(app):
    value = read_free_shipping_threshold()
    assert value.value == Decimal("50.00")
    assert value.degraded is True
    assert value.reason == "SETTING_NOT_SET"


def test_threshold_store_unavailable(app):
    StoreSetting.__table__.drop(db.engine)
    value = read_free_shipping_threshold()
    assert value.value == Decimal("50.00")
    assert value.reason == "SETTINGS_STORE_UNAVAILABLE"


class NoSettingsConfig(TestConfig):
    CAPABILITIES = Capabilities(variants=True, settings=False)


def test_threshold_without_settings_capability():
    app = create_app(NoSettingsConfig)
    with app.app_context():
        db.session.add(StoreSetting(key=FREE_SHIPPING_THRESHOLD_KEY, value_number=Decimal("10")))
        db.session.commit()
        value = read_free_shipping_threshold()
        assert value.value == Decimal("50.00")
        assert value.reason == "SETTINGS_TABLE_MISSING"
        db.session.remove()
        db.drop_all()


def test_write_threshold(app):
    write_free_shipping_threshold("75.5")
    assert read_free_shipping_threshold().value == Decimal("75.50")
    write_free_shipping_threshold(0)
    value = read_free_shipping_threshold()
    assert value.value == Decimal("0.00")
    assert value.degraded is False


@pytest.mark.parametrize("bad", [-1, "abc", None, True, 1e30])
def test_write_threshold_rejects_bad_values(app, bad):
    with pytest.raises(InputError):
        write_free_shipping_threshold(bad)
