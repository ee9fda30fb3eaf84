from decimal import Decimal

import pytest

from storefront.config import Capabilities
from storefront.services.errors import CatalogError, InputError
from storefront.services.pricing_service import CartItem, normalize_items, price_lines


def test_normalize_clamps_quantity_and_variant(app):
    items = normalize_items([
        {"slug": " a ", "qty": 0},
        {"slug": "b", "qty": 500},
        {"slug": "c", "qty": "3", "variantId": "7"},
        {"slug": "d", "qty": "abc", "variantId": -2},
        {"slug": "e"},
    ])
    assert [(i.slug, i.qty, i.variant_id) for i in items] == [
        ("a", 1, None), ("b", 99, None), ("c", 3, 7), ("d", 1, None), ("e", 1, None),
    ]


@pytest.mark.parametrize("raw", [None, "cart", {"slug": "a"}])
def test_normalize_rejects_non_list(app, raw):
    with pytest.raises(InputError) as exc:
        normalize_items(raw)
    assert exc.value.reason == "INVALID_REQUEST"


@pytest.mark.parametrize("entry", ["a", {"qty": 1}, {"slug": "  "}, {"slug": 12}])
def test_normalize_rejects_malformed_entry(app, entry):
    with pytest.raises(InputError) as exc:
        normalize_items([entry])
    assert exc.value.reason == "INVALID_ITEM"


def test_base_price_without_variants(app, make_product):
    make_product("nivran-calm-100ml", "18.00", category_key="perfume")
    (line,) = price_lines([CartItem("nivran-calm-100ml", 2)])
    assert line.variant_id is None
    assert line.unit_price == Decimal("18.00")
    assert line.line_total == Decimal("36.00")
    assert line.category_key == "perfume"


def test_line_total_rounds_per_line(app, make_product):
    make_product("soap-bar", "1.15")
    (line,) = price_lines([CartItem("soap-bar", 3)])
    assert line.line_total == Decimal("3.45")


def test_default_flag_wins_over_cheaper_variant(app, make_product, make_variant):
    p = make_product("oud", "30.00")
    make_variant(p, "50ml", "10.00")
    preferred = make_variant(p, "100ml", "20.00", is_default=True)
    (line,) = price_lines([CartItem("oud", 1)])
    assert line.variant_id == preferred.id
    assert line.unit_price == Decimal("20.00")
    assert line.variant_label == "100ml"


def test_default_falls_back_to_cheapest_then_sort_order_then_id(app, make_product, make_variant):
    p = make_product("musk", "30.00")
    make_variant(p, "large", "12.00")
    make_variant(p, "small-late", "10.00", sort_order=5)
    first = make_variant(p, "small-a", "10.00", sort_order=1)
    make_variant(p, "small-b", "10.00", sort_order=1)
    for _ in range(3):
        (line,) = price_lines([CartItem("musk", 1)])
        assert line.variant_id == first.id


def test_inactive_default_is_skipped(app, make_product, make_variant):
    p = make_product("amber", "30.00")
    make_variant(p, "retired", "5.00", is_default=True, is_active=False)
    live = make_variant(p, "live", "25.00")
    (line,) = price_lines([CartItem("amber", 1)])
    assert line.variant_id == live.id


def test_no_active_variant_uses_product_price(app, make_product, make_variant):
    p = make_product("rose", "14.50")
    make_variant(p, "gone", "9.00", is_active=False)
    (line,) = price_lines([CartItem("rose", 1)])
    assert line.variant_id is None
    assert line.unit_price == Decimal("14.50")


def test_explicit_variant_price(app, make_product, make_variant):
    p = make_product("cedar", "30.00")
    make_variant(p, "default", "20.00", is_default=True)
    chosen = make_variant(p, "travel", "8.25")
    (line,) = price_lines([CartItem("cedar", 2, chosen.id)])
    assert line.variant_id == chosen.id
    assert line.requested_variant_id == chosen.id
    assert line.line_total == Decimal("16.50")


def test_variant_from_other_product_is_rejected(app, make_product, make_variant):
    make_product("cedar", "30.00")
    other = make_product("vetiver", "30.00")
    foreign = make_variant(other, "travel", "8.00")
    with pytest.raises(CatalogError) as exc:
        price_lines([CartItem("cedar", 1, foreign.id)])
    assert exc.value.reason == "INVALID_VARIANT"


def test_inactive_variant_is_rejected(app, make_product, make_variant):
    p = make_product("cedar", "30.00")
    hidden = make_variant(p, "travel", "8.00", is_active=False)
    with pytest.raises(CatalogError) as exc:
        price_lines([CartItem("cedar", 1, hidden.id)])
    assert exc.value.reason == "INVALID_VARIANT"


@pytest.mark.parametrize("active", [False, None])
def test_missing_or_inactive_product(app, make_product, active):
    if active is False:
        make_product("sleepy", "10.00", is_active=False)
    with pytest.raises(CatalogError) as exc:
        price_lines([CartItem("sleepy", 1)])
    assert exc.value.reason == "INVALID_PRODUCT"


def test_variants_capability_off(app, make_product, make_variant):
    p = make_product("cedar", "30.00")
    v = make_variant(p, "default", "20.00", is_default=True)
    app.config["CAPABILITIES"] = Capabilities(variants=False, settings=True)

    (line,) = price_lines([CartItem("cedar", 1)])
    assert line.variant_id is None
    assert line.unit_price == Decimal("30.00")

    with pytest.raises(CatalogError):
        price_lines([CartItem("cedar", 1, v.id)])
