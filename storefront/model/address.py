# storefront/model/address.py
from sqlalchemy.sql import func
from ..extensions import db

class Address(db.Model):
    __tablename__ = "address"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    label = db.Column(db.String(32))                 # "Home", "Farm", ...
    full_name = db.Column(db.String(180), nullable=False)
    phone = db.Column(db.String(32), nullable=False)
    address_line1 = db.Column(db.String(255), nullable=False)
    address_line2 = db.Column(db.String(255))
    city = db.Column(db.String(120))
    district = db.Column(db.String(120))
    state = db.Column(db.String(120), nullable=False)
    pincode = db.Column(db.String(12), nullable=False)
    is_default = db.Column(db.Boolean, default=False)
    is_deleted = db.Column(db.Boolean, default=False, index=True)

    created_at = db.Column(db.DateTime, server_default=func.now())

    def snapshot(self) -> dict:
        """Deep copy stored on orders; later edits never reach past orders."""
        return {
            "full_name": self.full_name,
            "phone": self.phone,
            "address_line1": self.address_line1,
            "address_line2": self.address_line2,
            "city": self.city,
            "district": self.district,
            "state": self.state,
            "pincode": self.pincode,
        }

    def as_api(self):
        return {
            "id": self.id,
            "label": self.label,
            "is_default": self.is_default,
            **self.snapshot(),
        }
