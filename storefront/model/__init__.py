# ------ storefront/model/__init__.py ------

from .user import User
from .product import Product
from .address import Address
from .coupon import Coupon
from .cart import Cart, CartItem
from .order import Order, OrderItem, OrderSequence
from .inventory import InventoryLog
from .types import (
    OrderStatus,
    PaymentStatus,
    PaymentMethod,
    CouponType,
    InventoryChange,
)

__all__ = [
    "User",
    "Product",
    "Address",
    "Coupon",
    "Cart",
    "CartItem",
    "Order",
    "OrderItem",
    "OrderSequence",
    "InventoryLog",
    "OrderStatus",
    "PaymentStatus",
    "PaymentMethod",
    "CouponType",
    "InventoryChange",
]
