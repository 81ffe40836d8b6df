# storefront/model/cart.py
from __future__ import annotations
from sqlalchemy.sql import func
from ..extensions import db
from ..utils.money import to_api

class Cart(db.Model):
    """One cart per user, created lazily and emptied (never deleted) on checkout.

    ``subtotal``, ``discount`` and ``total`` are derived fields maintained by
    ``cart_service.recalculate``.
    """
    __tablename__ = "cart"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, unique=True, index=True)
    coupon_id = db.Column(db.Integer, db.ForeignKey("coupon.id"), nullable=True)

    subtotal = db.Column(db.BigInteger, nullable=False, default=0)
    discount = db.Column(db.BigInteger, nullable=False, default=0)
    total = db.Column(db.BigInteger, nullable=False, default=0)

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    items = db.relationship(
        "CartItem",
        backref="cart",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="CartItem.id.asc()"
    )
    coupon = db.relationship("Coupon", lazy="joined")

    @property
    def item_count(self) -> int:
        return sum(i.quantity for i in self.items)

    def as_api(self):
        return {
            "id": self.id,
            "items": [i.as_api() for i in self.items],
            "coupon": self.coupon.as_api() if self.coupon else None,
            "subtotal": to_api(self.subtotal),
            "discount": to_api(self.discount),
            "total": to_api(self.total),
            "item_count": self.item_count,
        }


class CartItem(db.Model):
    __tablename__ = "cart_item"
    __table_args__ = (
        db.UniqueConstraint("cart_id", "product_id", name="uq_cart_item_product"),
        db.CheckConstraint("quantity > 0", name="ck_cart_item_quantity_positive"),
    )

    id = db.Column(db.Integer, primary_key=True)
    cart_id = db.Column(db.Integer, db.ForeignKey("cart.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("product.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False, default=1)
    unit_price = db.Column(db.BigInteger, nullable=False, default=0)   # price snapshot at add time
    line_total = db.Column(db.BigInteger, nullable=False, default=0)

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    product = db.relationship("Product", lazy="joined")

    def as_api(self):
        p = self.product
        return {
            "id": self.id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": to_api(self.unit_price),
            "line_total": to_api(self.line_total),
            "product": {
                "id": p.id if p else self.product_id,
                "name": p.name if p else None,
                "slug": p.slug if p else None,
                "thumbnail": p.thumbnail if p else None,
                "stock": p.stock if p else None,
                "is_active": p.is_active if p else None,
            },
        }
