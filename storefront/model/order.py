from datetime import datetime, timezone
from ..extensions import db

ORDER_STATUSES = (
    "PENDING_PAYMENT",
    "PENDING_COD_CONFIRM",
    "PAID",
    "PROCESSING",
    "SHIPPED",
    "DELIVERED",
    "CANCELED",
    "REFUNDED",
)


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    cart_id = db.Column(db.String(64), unique=True, nullable=False, index=True)
    status = db.Column(db.String(32), nullable=False, index=True)
    locale = db.Column(db.String(8), nullable=False, default="en")
    payment_method = db.Column(db.String(16), nullable=False, default="PAYTABS")

    # Customer snapshot
    customer_name = db.Column(db.String(120))
    customer_phone = db.Column(db.String(50))
    customer_email = db.Column(db.String(120))
    shipping_city = db.Column(db.String(120))
    shipping_address = db.Column(db.Text)
    shipping_country = db.Column(db.String(64))
    notes = db.Column(db.Text)

    # Line snapshot at commit time
    items = db.Column(db.JSON, nullable=False)

    # Money snapshot
    subtotal_before_discount_jod = db.Column(db.Numeric(10, 2))
    discount_jod = db.Column(db.Numeric(10, 2))
    subtotal_after_discount_jod = db.Column(db.Numeric(10, 2))
    shipping_jod = db.Column(db.Numeric(10, 2))
    total_jod = db.Column(db.Numeric(10, 2))
    free_shipping_threshold_jod = db.Column(db.Numeric(10, 2))
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="JOD")

    # Promotion linkage (not a FK: promotions may be deleted later)
    discount_source = db.Column(db.String(8))
    promotion_id = db.Column(db.Integer, index=True)
    promo_code = db.Column(db.String(64), index=True)

    created_at = db.Column(db.DateTime, default=_utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    def totals_api(self):
        return {
            "subtotalBeforeDiscountJod": float(self.subtotal_before_discount_jod or 0),
            "discountJod": float(self.discount_jod or 0),
            "subtotalAfterDiscountJod": float(self.subtotal_after_discount_jod or 0),
            "shippingJod": float(self.shipping_jod or 0),
            "totalJod": float(self.total_jod or 0),
            "freeShippingThresholdJod": float(self.free_shipping_threshold_jod or 0),
        }

    def discount_api(self):
        return {
            "source": self.discount_source,
            "code": self.promo_code,
            "promotionId": self.promotion_id,
        }

    def as_api(self):
        return {
            "id": self.id,
            "cartId": self.cart_id,
            "status": self.status,
            "locale": self.locale,
            "paymentMethod": self.payment_method,
            "customer": {
                "name": self.customer_name,
                "phone": self.customer_phone,
                "email": self.customer_email,
            },
            "shipping": {
                "city": self.shipping_city,
                "address": self.shipping_address,
                "country": self.shipping_country,
                "notes": self.notes,
            },
            "items": self.items or [],
            "totals": self.totals_api(),
            "discount": self.discount_api(),
            "currency": self.currency,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
