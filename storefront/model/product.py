# storefront/model/product.py
from ..extensions import db
from sqlalchemy.sql import func
from ..utils.money import to_api

class Product(db.Model):
    """Catalog row as seen by the checkout core.

    ``stock`` is only ever changed through the inventory ledger service.
    """
    __tablename__ = "product"
    __table_args__ = (db.CheckConstraint("stock >= 0", name="ck_product_stock_non_negative"),)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    sku = db.Column(db.String(64), unique=True, index=True)
    slug = db.Column(db.String(255), index=True)
    thumbnail = db.Column(db.String(1024))

    price = db.Column(db.BigInteger, nullable=False, default=0)   # paise
    stock = db.Column(db.Integer, nullable=False, default=0)
    sold_count = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, default=True)

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    def as_api(self):
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "slug": self.slug,
            "thumbnail": self.thumbnail,
            "price": to_api(self.price),
            "stock": self.stock,
            "sold_count": self.sold_count,
            "is_active": self.is_active,
        }
