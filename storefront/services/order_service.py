# storefront/services/order_service.py
import uuid
from dataclasses import dataclass

from flask import current_app

from ..extensions import db
from ..model import Order
from ..model.order import ORDER_STATUSES
from .errors import InputError, PromotionError
from .pricing_service import build_quote, normalize_locale
from .promotion_service import consume_promotion_usage

PAYMENT_STATUSES = {
    "PAYTABS": "PENDING_PAYMENT",
    "COD": "PENDING_COD_CONFIRM",
}


@dataclass(frozen=True)
class Checkout:
    name: str
    phone: str
    email: str
    city: str
    address: str
    country: str
    notes: str
    payment_method: str
    locale: str


def _text(d, key):
    return str((d or {}).get(key) or "").strip()


def validate_checkout(payload: dict) -> Checkout:
    customer = payload.get("customer") if isinstance(payload.get("customer"), dict) else {}
    shipping = payload.get("shipping") if isinstance(payload.get("shipping"), dict) else {}

    name, phone, email = _text(customer, "name"), _text(customer, "phone"), _text(customer, "email")
    address = _text(shipping, "address")
    if not name or not phone or not address or "@" not in email:
        raise InputError("MISSING_FIELDS", "Missing required fields")

    method = str(payload.get("paymentMethod") or "").strip().upper()
    method = "COD" if method == "COD" else "PAYTABS"

    return Checkout(
        name=name,
        phone=phone,
        email=email,
        city=_text(shipping, "city"),
        address=address,
        country=_text(shipping, "country") or "Jordan",
        notes=_text(shipping, "notes"),
        payment_method=method,
        locale=normalize_locale(payload.get("locale")),
    )


def _gen_cart_id():
    return uuid.uuid4().hex


def create_order(payload: dict, now=None) -> Order:
    """
    Re-price the submitted cart and persist the order in one transaction.
    Client-side totals are never read.
    """
    checkout = validate_checkout(payload)
    items = payload.get("items")
    if not isinstance(items, list) or not items:
        raise InputError("NO_ITEMS", "No items")

    try:
        quote = build_quote(items, payload.get("discountMode"), payload.get("promoCode"), checkout.locale, now)
        promo = quote.promotion

        if promo is not None and quote.discount_source == "CODE":
            if not consume_promotion_usage(promo.promotion_id):
                current_app.logger.warning("promotion %s hit its usage limit at commit", promo.promotion_id)
                raise PromotionError("PROMO_USAGE_LIMIT", "promo code usage limit reached")

        order = Order(
            cart_id=_gen_cart_id(),
            status=PAYMENT_STATUSES[checkout.payment_method],
            locale=checkout.locale,
            payment_method=checkout.payment_method,
            customer_name=checkout.name,
            customer_phone=checkout.phone,
            customer_email=checkout.email,
            shipping_city=checkout.city or None,
            shipping_address=checkout.address,
            shipping_country=checkout.country,
            notes=checkout.notes or None,
            items=[line.as_snapshot() for line in quote.lines],
            subtotal_before_discount_jod=quote.subtotal_before_discount,
            discount_jod=quote.discount,
            subtotal_after_discount_jod=quote.subtotal_after_discount,
            shipping_jod=quote.shipping,
            total_jod=quote.total,
            free_shipping_threshold_jod=quote.free_shipping_threshold,
            amount=quote.total,
            currency=current_app.config.get("CURRENCY", "JOD"),
            discount_source=quote.discount_source,
            promotion_id=promo.promotion_id if promo is not None else None,
            promo_code=promo.promo_code if promo is not None else None,
        )
        db.session.add(order)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "order %s created: total=%s promotion=%s", order.cart_id, order.total_jod, order.promotion_id,
    )
    return order


def set_order_status(order: Order, status: str) -> Order:
    status = str(status or "").strip().upper()
    if status not in ORDER_STATUSES:
        raise InputError("INVALID_STATUS", f"status must be one of {', '.join(ORDER_STATUSES)}")
    order.status = status
    db.session.commit()
    return order
