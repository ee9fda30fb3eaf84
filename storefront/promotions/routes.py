# storefront/promotions/routes.py
from flask import request

from ..services.errors import InputError, PromotionError
from ..services.pricing_service import build_quote
from ..utils.api import err, no_store, ok
from . import bp


@bp.post("/validate")
def validate():
    """
    Body: { items: [...], mode: CODE|AUTO, promoCode? }
    Checks a code (or finds the best automatic promotion) against the cart.
    Totals come from the same quote the checkout uses.
    """
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return err("Invalid request", 400, "INVALID_REQUEST")

    mode = "AUTO" if str(body.get("mode") or "CODE").strip().upper() == "AUTO" else "CODE"
    items = body.get("items")
    if isinstance(items, list) and not items:
        raise InputError("NO_ITEMS", "Cart items are required")

    try:
        q = build_quote(items, mode, body.get("promoCode") if mode == "CODE" else None, body.get("locale"))
    except PromotionError as e:
        return no_store(err("Discount is invalid or not eligible", 400, e.reason))

    if q.promotion is None:
        return no_store(err("Discount is invalid or not eligible", 400, "PROMO_NOT_FOUND"))
    return no_store(ok(promo={"mode": mode, **q.promotion.as_api()}, totals=q.totals_api()))
