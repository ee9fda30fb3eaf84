# ------ storefront/model/__init__.py ------

from .product import Product, ProductVariant
from .promotion import Promotion
from .order import Order
from .setting import StoreSetting

__all__ = [
    "Product",
    "ProductVariant",
    "Promotion",
    "Order",
    "StoreSetting",
]
