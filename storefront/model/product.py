# storefront/model/product.py
from ..extensions import db
from sqlalchemy.sql import func


class Product(db.Model):
    __tablename__ = "products"

    id = db.Column(db.Integer, primary_key=True)
    slug = db.Column(db.String(255), nullable=False, unique=True, index=True)
    name_en = db.Column(db.String(255))
    name_ar = db.Column(db.String(255))

    price_jod = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    category_key = db.Column(db.String(64), index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    variants = db.relationship(
        "ProductVariant",
        backref="product",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ProductVariant.sort_order.asc()",
    )

    def as_api(self):
        return {
            "id": self.id,
            "slug": self.slug,
            "nameEn": self.name_en,
            "nameAr": self.name_ar,
            "priceJod": float(self.price_jod or 0),
            "categoryKey": self.category_key,
            "isActive": self.is_active,
            "variants": [v.as_api() for v in self.variants],
        }


class ProductVariant(db.Model):
    __tablename__ = "product_variants"

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    label = db.Column(db.String(120), nullable=False)
    size_ml = db.Column(db.Integer, nullable=True)

    price_jod = db.Column(db.Numeric(10, 2), nullable=False)
    compare_at_price_jod = db.Column(db.Numeric(10, 2), nullable=True)

    # at most one default per product; writers clear the others
    is_default = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    def as_api(self):
        return {
            "id": self.id,
            "productId": self.product_id,
            "label": self.label,
            "sizeMl": self.size_ml,
            "priceJod": float(self.price_jod or 0),
            "compareAtPriceJod": float(self.compare_at_price_jod) if self.compare_at_price_jod is not None else None,
            "isDefault": self.is_default,
            "isActive": self.is_active,
            "sortOrder": self.sort_order,
        }
