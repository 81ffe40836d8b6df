# storefront/model/inventory.py
from ..extensions import db
from ..utils.db import utcnow
from .types import InventoryChange

class InventoryLog(db.Model):
    """Append-only record of one stock change.

    Replaying ``quantity`` for a product in (created_at, id) order from zero
    yields the product's current stock.
    """
    __tablename__ = "inventory_log"

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("product.id"), nullable=False, index=True)
    type = db.Column(db.Enum(InventoryChange, native_enum=False, length=16), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)      # signed delta
    stock_before = db.Column(db.Integer, nullable=False)
    stock_after = db.Column(db.Integer, nullable=False)
    reference_id = db.Column(db.String(64), index=True)
    reference_type = db.Column(db.String(32))
    actor_id = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

    def as_api(self):
        return {
            "id": self.id,
            "product_id": self.product_id,
            "type": self.type.value,
            "quantity": self.quantity,
            "stock_before": self.stock_before,
            "stock_after": self.stock_after,
            "reference_id": self.reference_id,
            "reference_type": self.reference_type,
            "actor_id": self.actor_id,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
