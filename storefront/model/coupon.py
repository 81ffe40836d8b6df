# --- storefront/model/coupon.py ---

from ..extensions import db
from sqlalchemy.sql import func
from .types import CouponType
from ..utils.money import to_api

class Coupon(db.Model):
    __tablename__ = "coupon"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), unique=True, nullable=False, index=True)
    description = db.Column(db.String(255))

    ctype = db.Column(db.Enum(CouponType, native_enum=False, length=16), nullable=False, default=CouponType.PERCENTAGE)
    # percent points for PERCENTAGE, paise for FLAT, unused for FREE_SHIPPING
    value = db.Column(db.Integer, nullable=False, default=0)
    max_discount = db.Column(db.BigInteger, nullable=True)          # paise cap for PERCENTAGE
    min_order_value = db.Column(db.BigInteger, nullable=False, default=0)

    is_active = db.Column(db.Boolean, default=True, index=True)
    valid_from = db.Column(db.DateTime, nullable=True)
    valid_until = db.Column(db.DateTime, nullable=True)

    # 0 means unlimited
    max_uses = db.Column(db.Integer, nullable=False, default=0)
    used_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    def as_api(self):
        return {
            "id": self.id,
            "code": self.code,
            "type": self.ctype.value,
            "value": self.value if self.ctype == CouponType.PERCENTAGE else to_api(self.value),
            "max_discount": to_api(self.max_discount) if self.max_discount is not None else None,
            "min_order_value": to_api(self.min_order_value),
            "is_active": self.is_active,
            "valid_from": self.valid_from.isoformat() if self.valid_from else None,
            "valid_until": self.valid_until.isoformat() if self.valid_until else None,
            "max_uses": self.max_uses,
            "used_count": self.used_count,
        }
