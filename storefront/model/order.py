# storefront/model/order.py
from ..extensions import db
from ..utils.db import utcnow
from ..utils.money import to_api
from .types import OrderStatus, PaymentStatus, PaymentMethod

def _iso(dt):
    return dt.isoformat() if dt else None

class Order(db.Model):
    """An order is created once by checkout and never deleted.

    Money fields are fixed at creation time and never recomputed from live
    prices. ``shipping_address`` is a copy of the address at checkout.
    """
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(32), unique=True, nullable=False, index=True)  # e.g., "ORD-2026-000001"
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True, index=True)

    status = db.Column(db.Enum(OrderStatus, native_enum=False, length=32), nullable=False,
                       default=OrderStatus.PENDING, index=True)
    payment_status = db.Column(db.Enum(PaymentStatus, native_enum=False, length=16), nullable=False,
                               default=PaymentStatus.PENDING, index=True)
    payment_method = db.Column(db.Enum(PaymentMethod, native_enum=False, length=16), nullable=False,
                               default=PaymentMethod.COD)

    # Money snapshot (paise)
    subtotal = db.Column(db.BigInteger, nullable=False, default=0)
    shipping = db.Column(db.BigInteger, nullable=False, default=0)
    tax = db.Column(db.BigInteger, nullable=False, default=0)
    discount = db.Column(db.BigInteger, nullable=False, default=0)
    coupon_discount = db.Column(db.BigInteger, nullable=False, default=0)
    total = db.Column(db.BigInteger, nullable=False, default=0)

    coupon_id = db.Column(db.Integer, db.ForeignKey("coupon.id"), nullable=True)
    coupon_code = db.Column(db.String(64))

    shipping_address = db.Column(db.JSON)
    customer_notes = db.Column(db.Text)
    admin_notes = db.Column(db.Text)
    cancel_reason = db.Column(db.String(255))

    tracking_number = db.Column(db.String(64))
    courier_name = db.Column(db.String(120))
    estimated_delivery = db.Column(db.String(64))

    # Payment gateway bookkeeping
    gateway_order_id = db.Column(db.String(64), unique=True, index=True)
    payment_id = db.Column(db.String(64), index=True)
    payment_response = db.Column(db.JSON)

    # Stock held for an unpaid online order until this instant
    reservation_expires_at = db.Column(db.DateTime, nullable=True, index=True)
    # Set once when the order's stock goes back to the shelf
    inventory_released_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)
    confirmed_at = db.Column(db.DateTime)
    processed_at = db.Column(db.DateTime)
    shipped_at = db.Column(db.DateTime)
    delivered_at = db.Column(db.DateTime)
    cancelled_at = db.Column(db.DateTime)
    refunded_at = db.Column(db.DateTime)

    items = db.relationship(
        "OrderItem",
        backref="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.id.asc()",
    )

    def money_api(self):
        return {
            "subtotal": to_api(self.subtotal),
            "shipping": to_api(self.shipping),
            "tax": to_api(self.tax),
            "discount": to_api(self.discount),
            "coupon_discount": to_api(self.coupon_discount),
            "total": to_api(self.total),
        }

    def as_api(self):
        return {
            "id": self.id,
            "order_number": self.order_number,
            "status": self.status.value,
            "payment_status": self.payment_status.value,
            "payment_method": self.payment_method.value,
            **self.money_api(),
            "coupon_code": self.coupon_code,
            "shipping_address": self.shipping_address,
            "tracking_number": self.tracking_number,
            "courier_name": self.courier_name,
            "estimated_delivery": self.estimated_delivery,
            "customer_notes": self.customer_notes,
            "admin_notes": self.admin_notes,
            "items": [i.as_api() for i in self.items],
            "created_at": _iso(self.created_at),
            "confirmed_at": _iso(self.confirmed_at),
            "processed_at": _iso(self.processed_at),
            "shipped_at": _iso(self.shipped_at),
            "delivered_at": _iso(self.delivered_at),
            "cancelled_at": _iso(self.cancelled_at),
            "refunded_at": _iso(self.refunded_at),
        }

class OrderItem(db.Model):
    __tablename__ = "order_items"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    # Snapshot of the product at order time
    product_id = db.Column(db.Integer, db.ForeignKey("product.id"), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64))
    image = db.Column(db.String(1024))

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.BigInteger, nullable=False)
    tax = db.Column(db.BigInteger, nullable=False, default=0)
    discount = db.Column(db.BigInteger, nullable=False, default=0)
    total = db.Column(db.BigInteger, nullable=False)

    def as_api(self):
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "sku": self.sku,
            "image": self.image,
            "quantity": self.quantity,
            "unit_price": to_api(self.unit_price),
            "tax": to_api(self.tax),
            "discount": to_api(self.discount),
            "total": to_api(self.total),
        }

class OrderSequence(db.Model):
    """Per-year counter behind order numbers, bumped inside the checkout transaction."""
    __tablename__ = "order_sequence"

    year = db.Column(db.Integer, primary_key=True, autoincrement=False)
    last_value = db.Column(db.Integer, nullable=False, default=0)
