# storefront/services/catalog_service.py
from sqlalchemy import update

from ..extensions import db
from ..model import Product, ProductVariant, Promotion
from ..model.promotion import DISCOUNT_TYPES, normalize_kind, normalize_scope
from ..utils.money import D, MAX_AMOUNT, round_money
from ..utils.parsing import parse_bool, parse_int, parse_iso8601, parse_opt_float, parse_opt_int
from .errors import InputError

# ---- promotions -------------------------------------------------------------

PROMOTION_FIELDS = (
    "kind", "code", "title_en", "title_ar", "discount_type", "discount_value",
    "starts_at", "ends_at", "usage_limit", "min_order_jod", "category_keys",
    "product_slugs", "priority", "is_active",
)


def _scope_list(v, field):
    if v is None:
        return None
    if isinstance(v, str):
        v = v.split(",")
    if not isinstance(v, list):
        raise InputError("INVALID_PROMOTION", f"{field} must be a list")
    return normalize_scope(v)


def _apply_promotion_fields(promo: Promotion, data: dict, creating: bool):
    if creating or "kind" in data:
        promo.promo_kind = normalize_kind(data.get("kind"))

    if creating or "code" in data or "kind" in data:
        code = str(data.get("code", promo.code) or "").strip().upper()
        promo.code = code or None

    if creating or "discount_type" in data:
        dtype = str(data.get("discount_type") or "PERCENT").strip().upper()
        if dtype not in DISCOUNT_TYPES:
            raise InputError("INVALID_PROMOTION", "discount_type must be 'PERCENT' or 'FIXED'")
        promo.discount_type = dtype

    if creating or "discount_value" in data:
        value = parse_opt_float(data.get("discount_value"))
        if value is None or value <= 0:
            raise InputError("INVALID_PROMOTION", "discount_value must be > 0")
        if D(value) > MAX_AMOUNT:
            raise InputError("INVALID_PROMOTION", "discount_value is too large")
        if promo.discount_type == "PERCENT" and value > 100:
            raise InputError("INVALID_PROMOTION", "percent discount must be <= 100")
        promo.discount_value = round_money(value)

    for key in ("starts_at", "ends_at"):
        if key in data:
            raw = data.get(key)
            parsed = parse_iso8601(raw)
            if raw and parsed is None:
                raise InputError("INVALID_PROMOTION", f"Invalid datetime format for {key}")
            setattr(promo, key, parsed)
    if promo.starts_at and promo.ends_at and promo.ends_at < promo.starts_at:
        raise InputError("INVALID_PROMOTION", "ends_at must be after starts_at")

    if "usage_limit" in data:
        limit = parse_opt_int(data.get("usage_limit"))
        if limit is not None and limit < 0:
            raise InputError("INVALID_PROMOTION", "usage_limit must be >= 0")
        promo.usage_limit = limit

    if "min_order_jod" in data:
        min_order = parse_opt_float(data.get("min_order_jod"))
        if min_order is not None and (min_order < 0 or D(min_order) > MAX_AMOUNT):
            raise InputError("INVALID_PROMOTION", "min_order_jod is out of range")
        promo.min_order_jod = round_money(min_order) if min_order else None

    if "category_keys" in data:
        promo.category_keys = _scope_list(data.get("category_keys"), "category_keys")
    if "product_slugs" in data:
        promo.product_slugs = _scope_list(data.get("product_slugs"), "product_slugs")

    if creating or "priority" in data:
        promo.priority = parse_int(data.get("priority"), 0)
    if creating or "is_active" in data:
        promo.is_active = parse_bool(data.get("is_active"), default=True)
    for key in ("title_en", "title_ar"):
        if key in data:
            setattr(promo, key, str(data.get(key) or "").strip() or None)

    # CODE promotions carry a unique code, AUTO never does
    if promo.kind == "CODE":
        if not promo.code:
            raise InputError("INVALID_PROMOTION", "code is required for CODE promotions")
        with db.session.no_autoflush:
            clash = (Promotion.query
                     .filter(Promotion.code == promo.code, Promotion.id != promo.id)
                     .first())
        if clash:
            raise InputError("PROMO_CODE_EXISTS", "Promo code already exists", status=409)
    else:
        promo.code = None


def create_promotion(data: dict) -> Promotion:
    promo = Promotion(used_count=0)
    _apply_promotion_fields(promo, data, creating=True)
    db.session.add(promo)
    db.session.commit()
    return promo


def update_promotion(promo: Promotion, data: dict) -> Promotion:
    _apply_promotion_fields(promo, data, creating=False)
    db.session.commit()
    return promo


def toggle_promotion(promo: Promotion, is_active) -> Promotion:
    promo.is_active = parse_bool(is_active, default=not promo.is_active)
    db.session.commit()
    return promo


# ---- products ---------------------------------------------------------------

def _price(v, field, required=True):
    n = parse_opt_float(v)
    if n is None:
        if required:
            raise InputError("INVALID_PRICE", f"{field} is required")
        return None
    if n < 0 or (required and n <= 0):
        raise InputError("INVALID_PRICE", f"{field} must be > 0")
    if D(n) > MAX_AMOUNT:
        raise InputError("INVALID_PRICE", f"{field} is too large")
    return round_money(D(n))


def create_product(data: dict) -> Product:
    slug = str(data.get("slug") or "").strip().lower()
    if not slug:
        raise InputError("INVALID_PRODUCT", "slug is required")
    if Product.query.filter_by(slug=slug).first():
        raise InputError("PRODUCT_EXISTS", "Product slug already exists", status=409)

    p = Product(
        slug=slug,
        name_en=str(data.get("name_en") or "").strip() or None,
        name_ar=str(data.get("name_ar") or "").strip() or None,
        price_jod=_price(data.get("price_jod"), "price_jod"),
        category_key=str(data.get("category_key") or "").strip() or None,
        is_active=parse_bool(data.get("is_active"), default=True),
    )
    db.session.add(p)
    db.session.commit()
    return p


def update_product(p: Product, data: dict) -> Product:
    if "price_jod" in data:
        p.price_jod = _price(data.get("price_jod"), "price_jod")
    if "is_active" in data:
        p.is_active = parse_bool(data.get("is_active"))
    for key in ("name_en", "name_ar", "category_key"):
        if key in data:
            setattr(p, key, str(data.get(key) or "").strip() or None)
    db.session.commit()
    return p


# ---- variants ---------------------------------------------------------------

def _clear_defaults(product_id, keep_id=None):
    stmt = update(ProductVariant).where(ProductVariant.product_id == product_id)
    if keep_id is not None:
        stmt = stmt.where(ProductVariant.id != keep_id)
    db.session.execute(stmt.values(is_default=False).execution_options(synchronize_session="fetch"))


def save_variant(data: dict, variant: ProductVariant | None = None) -> ProductVariant:
    """Create or update a variant; a new default clears the product's previous one."""
    creating = variant is None
    if creating:
        product = db.session.get(Product, parse_int(data.get("product_id"), 0))
        if product is None:
            raise InputError("INVALID_PRODUCT", "product not found", status=404)
        variant = ProductVariant(product_id=product.id)

    if creating or "label" in data:
        label = str(data.get("label") or "").strip()
        if not label:
            raise InputError("INVALID_VARIANT", "label is required")
        variant.label = label
    if creating or "price_jod" in data:
        variant.price_jod = _price(data.get("price_jod"), "price_jod")
    if "compare_at_price_jod" in data:
        variant.compare_at_price_jod = _price(data.get("compare_at_price_jod"), "compare_at_price_jod", required=False)
    if "size_ml" in data:
        size = parse_opt_int(data.get("size_ml"))
        variant.size_ml = max(0, size) if size is not None else None
    if creating or "sort_order" in data:
        variant.sort_order = max(0, parse_int(data.get("sort_order"), 0))
    if creating or "is_active" in data:
        variant.is_active = parse_bool(data.get("is_active"), default=True)
    if creating or "is_default" in data:
        variant.is_default = parse_bool(data.get("is_default"))

    try:
        if creating:
            db.session.add(variant)
            db.session.flush()
        if variant.is_default:
            _clear_defaults(variant.product_id, keep_id=variant.id)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return variant


def delete_variant(variant: ProductVariant):
    db.session.delete(variant)
    db.session.commit()
