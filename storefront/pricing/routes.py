# storefront/pricing/routes.py
from flask import current_app, request

from ..services.errors import PromotionError
from ..services.pricing_service import build_quote
from ..services.shipping_service import base_shipping, read_free_shipping_threshold
from ..utils.api import err, no_store, ok
from . import bp


@bp.post("/pricing/quote")
def quote():
    """
    Body: { items: [{slug, qty, variantId?}], discountMode: NONE|AUTO|CODE, promoCode?, locale }
    A rejected promo code still answers 200 with a zero-discount quote.
    """
    body = request.get_json(silent=True)
    body = body if isinstance(body, dict) else {}

    try:
        q = build_quote(
            body.get("items"),
            body.get("discountMode", body.get("mode")),
            body.get("promoCode"),
            body.get("locale"),
        )
    except PromotionError as e:
        if e.fallback_quote is None:
            raise
        return no_store(err("Discount is invalid or not eligible", 200, e.reason,
                            quote=e.fallback_quote.as_api()))

    if q.threshold is not None and q.threshold.degraded:
        current_app.logger.info("quote priced with fallback shipping threshold (%s)", q.threshold.reason)
    return no_store(ok(quote=q.as_api()))


@bp.get("/shipping-config")
def shipping_config():
    threshold = read_free_shipping_threshold()
    return no_store(ok(
        thresholdJod=float(threshold.value),
        baseShippingJod=float(base_shipping()),
        fallback=threshold.degraded,
    ))
