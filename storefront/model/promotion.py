# --- storefront/model/promotion.py ---

from ..extensions import db
from sqlalchemy.sql import func

# legacy kinds still found in older rows
AUTO_KINDS = ("AUTO", "SEASONAL")
CODE_KINDS = ("CODE", "PROMO", "REFERRAL")

DISCOUNT_TYPES = ("PERCENT", "FIXED")


def normalize_kind(value) -> str:
    kind = str(value or "").strip().upper()
    return "AUTO" if kind in AUTO_KINDS else "CODE"


def normalize_scope(values):
    """Blank entries are dropped; an empty result means unscoped (None)."""
    if not values:
        return None
    cleaned = [str(v).strip() for v in values if v is not None and str(v).strip()]
    return cleaned or None


class Promotion(db.Model):
    __tablename__ = "promotions"

    id = db.Column(db.Integer, primary_key=True)
    promo_kind = db.Column(db.String(16), nullable=False, default="CODE", index=True)
    # required for CODE kinds, NULL for AUTO
    code = db.Column(db.String(64), unique=True, nullable=True, index=True)

    title_en = db.Column(db.String(255))
    title_ar = db.Column(db.String(255))

    # "PERCENT" or "FIXED"
    discount_type = db.Column(db.String(16), nullable=False, default="PERCENT")
    discount_value = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    starts_at = db.Column(db.DateTime, nullable=True)
    ends_at = db.Column(db.DateTime, nullable=True)

    usage_limit = db.Column(db.Integer, nullable=True)
    used_count = db.Column(db.Integer, nullable=False, default=0)

    min_order_jod = db.Column(db.Numeric(10, 2), nullable=True)

    # None = applies to every line
    category_keys = db.Column(db.JSON, nullable=True)
    product_slugs = db.Column(db.JSON, nullable=True)

    priority = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime, server_default=func.now(), index=True)
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    @property
    def kind(self) -> str:
        return normalize_kind(self.promo_kind)

    def as_api(self):
        return {
            "id": self.id,
            "kind": self.kind,
            "code": self.code,
            "titleEn": self.title_en,
            "titleAr": self.title_ar,
            "discountType": self.discount_type,
            "discountValue": float(self.discount_value or 0),
            "startsAt": self.starts_at.isoformat() if self.starts_at else None,
            "endsAt": self.ends_at.isoformat() if self.ends_at else None,
            "usageLimit": self.usage_limit,
            "usedCount": self.used_count or 0,
            "minOrderJod": float(self.min_order_jod) if self.min_order_jod is not None else None,
            "categoryKeys": normalize_scope(self.category_keys),
            "productSlugs": normalize_scope(self.product_slugs),
            "priority": self.priority or 0,
            "isActive": self.is_active,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
