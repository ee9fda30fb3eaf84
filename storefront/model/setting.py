# storefront/model/setting.py
from ..extensions import db
from sqlalchemy.sql import func

FREE_SHIPPING_THRESHOLD_KEY = "free_shipping_threshold_jod"


class StoreSetting(db.Model):
    __tablename__ = "store_settings"

    key = db.Column(db.String(64), primary_key=True)
    value_number = db.Column(db.Numeric(12, 2), nullable=True)
    value_text = db.Column(db.Text, nullable=True)
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())
