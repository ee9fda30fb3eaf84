# storefront/orders/routes.py
from flask import request

from ..model import Order
from ..services.order_service import create_order
from ..utils.api import err, no_store, ok
from . import bp


@bp.post("")
def create():
    """
    Body: { items, discountMode, promoCode?, locale, paymentMethod,
            customer: {name, phone, email}, shipping: {city, address, country, notes} }
    Totals are always recomputed here; anything the client sends for them is ignored.
    """
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return err("Invalid JSON", 400, "INVALID_REQUEST")

    order = create_order(body)
    return no_store(ok(
        cartId=order.cart_id,
        status=order.status,
        totals=order.totals_api(),
        discount=order.discount_api(),
    ))


@bp.get("/<cart_id>")
def get_order(cart_id: str):
    o = Order.query.filter_by(cart_id=cart_id).first()
    if not o:
        return err("order not found", 404, "ORDER_NOT_FOUND")
    return no_store(ok(order=o.as_api()))
