# storefront/services/pricing_service.py
from dataclasses import dataclass, field

from flask import current_app

from ..model import Product, ProductVariant
from ..utils.money import Money, ZERO, round_money
from .errors import CatalogError, InputError, PricingError, PromotionError
from .promotion_service import PromotionMatch, evaluate_auto, evaluate_code
from .shipping_service import SettingValue, read_free_shipping_threshold, shipping_for_subtotal

DISCOUNT_MODES = ("NONE", "AUTO", "CODE")


# ---- cart input ------------------------------------------------------------

@dataclass(frozen=True)
class CartItem:
    slug: str
    qty: int
    variant_id: int | None = None


def _normalize_qty(v) -> int:
    max_qty = current_app.config.get("MAX_LINE_QTY", 99)
    try:
        n = int(float(v))
    except (TypeError, ValueError, OverflowError):
        return 1
    return max(1, min(max_qty, n))


def _normalize_variant_id(v):
    if v is None or isinstance(v, bool):
        return None
    try:
        n = int(float(v))
    except (TypeError, ValueError, OverflowError):
        return None
    return n if n > 0 else None


def normalize_items(raw) -> list[CartItem]:
    if not isinstance(raw, list):
        raise InputError("INVALID_REQUEST", "items must be a list of cart entries")

    items = []
    for entry in raw:
        if not isinstance(entry, dict):
            raise InputError("INVALID_ITEM", "Malformed cart entry")
        slug = entry.get("slug")
        if not isinstance(slug, str) or not slug.strip():
            raise InputError("INVALID_ITEM", "Cart entry is missing a product slug")
        items.append(CartItem(
            slug=slug.strip(),
            qty=_normalize_qty(entry.get("qty", 1)),
            variant_id=_normalize_variant_id(entry.get("variantId")),
        ))
    return items


# ---- line pricer -----------------------------------------------------------

@dataclass(frozen=True)
class PricedLine:
    slug: str
    qty: int
    requested_variant_id: int | None
    variant_id: int | None
    variant_label: str | None
    name_en: str
    name_ar: str
    category_key: str | None
    unit_price: Money
    line_total: Money

    def as_api(self):
        return {
            "slug": self.slug,
            "qty": self.qty,
            "requestedVariantId": self.requested_variant_id,
            "variantId": self.variant_id,
            "variantLabel": self.variant_label,
            "nameEn": self.name_en,
            "nameAr": self.name_ar,
            "categoryKey": self.category_key,
            "unitPriceJod": float(self.unit_price),
            "lineTotalJod": float(self.line_total),
        }

    def as_snapshot(self):
        return {
            "slug": self.slug,
            "name_en": self.name_en,
            "name_ar": self.name_ar,
            "variant_id": self.variant_id,
            "variant_label": self.variant_label,
            "category_key": self.category_key,
            "qty": self.qty,
            "unit_price_jod": float(self.unit_price),
            "line_total_jod": float(self.line_total),
        }


def _default_variants(product_ids):
    """First active variant per product: is_default desc, price asc, sort_order asc, id asc."""
    if not product_ids:
        return {}
    rows = (ProductVariant.query
            .filter(ProductVariant.product_id.in_(product_ids), ProductVariant.is_active.is_(True))
            .order_by(
                ProductVariant.product_id.asc(),
                ProductVariant.is_default.desc(),
                ProductVariant.price_jod.asc(),
                ProductVariant.sort_order.asc(),
                ProductVariant.id.asc(),
            )
            .all())
    picked = {}
    for v in rows:
        picked.setdefault(v.product_id, v)
    return picked


def _explicit_variants(variant_ids):
    if not variant_ids:
        return {}
    rows = (ProductVariant.query
            .filter(ProductVariant.id.in_(variant_ids), ProductVariant.is_active.is_(True))
            .all())
    return {v.id: v for v in rows}


def price_lines(items: list[CartItem]) -> list[PricedLine]:
    if not items:
        return []

    slugs = sorted({it.slug for it in items})
    products = {p.slug: p for p in Product.query.filter(Product.slug.in_(slugs)).all()}

    caps = current_app.config["CAPABILITIES"]
    if caps.variants:
        defaults = _default_variants([p.id for p in products.values() if p.is_active])
        explicit = _explicit_variants(sorted({it.variant_id for it in items if it.variant_id}))
    else:
        defaults, explicit = {}, {}

    lines = []
    for it in items:
        p = products.get(it.slug)
        if p is None or not p.is_active:
            raise CatalogError("INVALID_PRODUCT", f"Invalid product: {it.slug}")

        variant = defaults.get(p.id)
        if it.variant_id is not None:
            variant = explicit.get(it.variant_id)
            if variant is None or variant.product_id != p.id:
                raise CatalogError("INVALID_VARIANT", "Selected variant is invalid")

        unit = round_money(variant.price_jod if variant is not None else p.price_jod)
        lines.append(PricedLine(
            slug=it.slug,
            qty=it.qty,
            requested_variant_id=it.variant_id,
            variant_id=variant.id if variant is not None else None,
            variant_label=variant.label if variant is not None else None,
            name_en=p.name_en or it.slug,
            name_ar=p.name_ar or p.name_en or it.slug,
            category_key=p.category_key or None,
            unit_price=unit,
            line_total=round_money(unit * it.qty),
        ))
    return lines


# ---- quote -----------------------------------------------------------------

@dataclass
class Quote:
    lines: list = field(default_factory=list)
    subtotal_before_discount: Money = ZERO
    discount: Money = ZERO
    subtotal_after_discount: Money = ZERO
    shipping: Money = ZERO
    total: Money = ZERO
    free_shipping_threshold: Money = ZERO
    discount_source: str | None = None
    promotion: PromotionMatch | None = None
    threshold: SettingValue | None = None
    locale: str = "en"

    def totals_api(self):
        return {
            "subtotalBeforeDiscountJod": float(self.subtotal_before_discount),
            "discountJod": float(self.discount),
            "subtotalAfterDiscountJod": float(self.subtotal_after_discount),
            "shippingJod": float(self.shipping),
            "totalJod": float(self.total),
            "freeShippingThresholdJod": float(self.free_shipping_threshold),
        }

    def discount_api(self):
        if self.promotion is None:
            return {"source": None, "code": None, "promotionId": None}
        p = self.promotion
        return {
            "source": self.discount_source,
            "code": p.promo_code,
            "promotionId": p.promotion_id,
            "titleEn": p.meta.get("title_en"),
            "titleAr": p.meta.get("title_ar"),
            "discountType": p.meta.get("discount_type"),
            "discountValue": p.meta.get("discount_value"),
            "priority": p.priority,
            "eligibleSubtotalJod": float(p.eligible_subtotal),
        }

    def as_api(self):
        return {
            "lines": [l.as_api() for l in self.lines],
            "totals": self.totals_api(),
            "discount": self.discount_api(),
        }


def normalize_locale(v) -> str:
    return "ar" if v == "ar" else "en"


def normalize_discount_mode(v) -> str:
    mode = str(v or "").strip().upper()
    if not mode:
        return "AUTO"
    if mode not in DISCOUNT_MODES:
        raise PricingError("DISCOUNT_MODE_UNSUPPORTED", f"Unsupported discount mode: {mode}")
    return mode


def _assemble(lines, subtotal, promotion, source, threshold, locale) -> Quote:
    discount = promotion.discount if promotion is not None else ZERO
    after = round_money(max(ZERO, subtotal - discount))
    shipping = shipping_for_subtotal(after, bool(lines), threshold.value)
    return Quote(
        lines=lines,
        subtotal_before_discount=subtotal,
        discount=discount,
        subtotal_after_discount=after,
        shipping=shipping,
        total=round_money(after + shipping),
        free_shipping_threshold=threshold.value,
        discount_source=source if promotion is not None else None,
        promotion=promotion,
        threshold=threshold,
        locale=locale,
    )


def build_quote(raw_items, discount_mode=None, promo_code=None, locale="en", now=None) -> Quote:
    """
    Price a cart from raw client input. Used for previews and at order
    commit alike; nothing here writes to the database.
    """
    locale = normalize_locale(locale)
    items = normalize_items(raw_items)
    if not items:
        return Quote(locale=locale)

    mode = normalize_discount_mode(discount_mode)
    code = str(promo_code or "").strip().upper()
    if mode == "CODE" and not code:
        raise PromotionError("PROMO_INVALID", "Promo code is required")
    if mode != "CODE" and code:
        raise PricingError("DISCOUNT_MODE_UNSUPPORTED",
                           "Promo codes are only accepted with discountMode CODE")

    lines = price_lines(items)
    subtotal = round_money(sum((l.line_total for l in lines), ZERO))
    threshold = read_free_shipping_threshold()

    promotion = None
    if mode == "CODE":
        result = evaluate_code(code, lines, subtotal, now)
        if not result.ok:
            fallback = _assemble(lines, subtotal, None, None, threshold, locale)
            raise PromotionError(result.code, result.message, fallback_quote=fallback)
        promotion = result
    elif mode == "AUTO":
        result = evaluate_auto(lines, subtotal, now)
        # automatic discounts are opportunistic
        if result.ok and result.discount > 0:
            promotion = result

    return _assemble(lines, subtotal, promotion, mode, threshold, locale)
