# storefront/admin/routes.py
from datetime import datetime, timedelta
from io import BytesIO

import pandas as pd
from flask import request, send_file

from ..extensions import db
from ..model import Order, Product, ProductVariant, Promotion
from ..services import catalog_service
from ..services.order_service import set_order_status
from ..services.shipping_service import read_free_shipping_threshold, write_free_shipping_threshold
from ..utils.api import err, ok
from ..utils.decorators import role_required
from ..utils.parsing import parse_bool, parse_int
from . import bp


def _json():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _paginate(query, page, per_page):
    page = max(parse_int(page, 1), 1)
    per_page = min(max(parse_int(per_page, 20), 1), 100)
    items = query.paginate(page=page, per_page=per_page, error_out=False)
    return {
        "meta": {
            "page": items.page,
            "pages": items.pages or 1,
            "per_page": per_page,
            "total": items.total,
        },
        "items": items.items,
    }


# ---- promotions -------------------------------------------------------------

@bp.get("/promotions")
@role_required("admin")
def list_promotions():
    q = Promotion.query
    active = request.args.get("active")
    if active is not None:
        q = q.filter(Promotion.is_active.is_(parse_bool(active)))
    items = q.order_by(Promotion.priority.desc(), Promotion.id.desc()).all()
    return ok(items=[p.as_api() for p in items])


@bp.post("/promotions")
@role_required("admin")
def create_promotion():
    promo = catalog_service.create_promotion(_json())
    return ok(201, promotion=promo.as_api())


@bp.patch("/promotions/<int:promo_id>")
@role_required("admin")
def update_promotion(promo_id: int):
    promo = db.session.get(Promotion, promo_id)
    if not promo:
        return err("promotion not found", 404, "PROMO_NOT_FOUND")
    catalog_service.update_promotion(promo, _json())
    return ok(promotion=promo.as_api())


@bp.post("/promotions/<int:promo_id>/toggle")
@role_required("admin")
def toggle_promotion(promo_id: int):
    promo = db.session.get(Promotion, promo_id)
    if not promo:
        return err("promotion not found", 404, "PROMO_NOT_FOUND")
    catalog_service.toggle_promotion(promo, _json().get("is_active"))
    return ok(promotion=promo.as_api())


@bp.delete("/promotions/<int:promo_id>")
@role_required("admin")
def delete_promotion(promo_id: int):
    promo = db.session.get(Promotion, promo_id)
    if not promo:
        return err("promotion not found", 404, "PROMO_NOT_FOUND")
    db.session.delete(promo)
    db.session.commit()
    return ok(deleted=promo_id)


# ---- products & variants ----------------------------------------------------

@bp.post("/products")
@role_required("admin")
def create_product():
    p = catalog_service.create_product(_json())
    return ok(201, product=p.as_api())


@bp.patch("/products/<slug>")
@role_required("admin")
def update_product(slug: str):
    p = Product.query.filter_by(slug=slug).first()
    if not p:
        return err("product not found", 404, "INVALID_PRODUCT")
    catalog_service.update_product(p, _json())
    return ok(product=p.as_api())


@bp.post("/variants")
@role_required("admin")
def create_variant():
    v = catalog_service.save_variant(_json())
    return ok(201, variant=v.as_api())


@bp.patch("/variants/<int:variant_id>")
@role_required("admin")
def update_variant(variant_id: int):
    v = db.session.get(ProductVariant, variant_id)
    if not v:
        return err("variant not found", 404, "INVALID_VARIANT")
    catalog_service.save_variant(_json(), v)
    return ok(variant=v.as_api())


@bp.delete("/variants/<int:variant_id>")
@role_required("admin")
def delete_variant(variant_id: int):
    v = db.session.get(ProductVariant, variant_id)
    if not v:
        return err("variant not found", 404, "INVALID_VARIANT")
    catalog_service.delete_variant(v)
    return ok(deleted=variant_id)


# ---- settings ---------------------------------------------------------------

@bp.put("/settings/free-shipping")
@role_required("admin")
def set_free_shipping():
    write_free_shipping_threshold(_json().get("free_shipping_threshold_jod"))
    current = read_free_shipping_threshold()
    return ok(thresholdJod=float(current.value), fallback=current.degraded)


# ---- orders -----------------------------------------------------------------

def _filtered_orders():
    """
    Query params:
      - status=PENDING_PAYMENT|PAID|...
      - phone, email, promo_code
      - start=YYYY-MM-DD
      - end=YYYY-MM-DD (inclusive)
    """
    q = Order.query
    status = request.args.get("status")
    phone = request.args.get("phone")
    email = request.args.get("email")
    promo_code = request.args.get("promo_code")
    start = request.args.get("start")
    end = request.args.get("end")

    if status: q = q.filter(Order.status == status.upper())
    if phone: q = q.filter(Order.customer_phone == phone)
    if email: q = q.filter(Order.customer_email == email)
    if promo_code: q = q.filter(Order.promo_code == promo_code.upper())
    if start:
        q = q.filter(Order.created_at >= datetime.fromisoformat(start))
    if end:
        # make end inclusive for the whole day
        q = q.filter(Order.created_at < datetime.fromisoformat(end) + timedelta(days=1))
    return q.order_by(Order.created_at.desc(), Order.id.desc())


@bp.get("/orders")
@role_required("admin")
def list_orders():
    paged = _paginate(_filtered_orders(), request.args.get("page"), request.args.get("per_page"))
    return ok(meta=paged["meta"], items=[o.as_api() for o in paged["items"]])


@bp.patch("/orders/<cart_id>/status")
@role_required("admin")
def update_order_status(cart_id: str):
    o = Order.query.filter_by(cart_id=cart_id).first()
    if not o:
        return err("order not found", 404, "ORDER_NOT_FOUND")
    set_order_status(o, _json().get("status"))
    return ok(order=o.as_api())


@bp.get("/orders/export")
@role_required("admin")
def export_orders():
    rows = [{
        "Cart ID": o.cart_id,
        "Created At": o.created_at,
        "Status": o.status,
        "Payment Method": o.payment_method,
        "Customer": o.customer_name,
        "Phone": o.customer_phone,
        "Email": o.customer_email,
        "City": o.shipping_city,
        "Items": sum(int(i.get("qty") or 0) for i in (o.items or [])),
        "Subtotal": float(o.subtotal_before_discount_jod or 0),
        "Discount": float(o.discount_jod or 0),
        "Shipping": float(o.shipping_jod or 0),
        "Total": float(o.total_jod or 0),
        "Promo Code": o.promo_code,
        "Promotion ID": o.promotion_id,
    } for o in _filtered_orders().all()]
    df = pd.DataFrame(rows, columns=[
        "Cart ID", "Created At", "Status", "Payment Method", "Customer", "Phone", "Email",
        "City", "Items", "Subtotal", "Discount", "Shipping", "Total", "Promo Code", "Promotion ID",
    ])

    # Create an in-memory buffer
    output = BytesIO()
    output.write(df.to_csv(index=False).encode("utf-8"))
    output.seek(0)

    return send_file(
        output,
        as_attachment=True,
        download_name="orders_export.csv",
        mimetype="text/csv",
    )
