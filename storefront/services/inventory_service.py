# storefront/services/inventory_service.py
"""Inventory ledger.

Stock only moves through ``_apply_delta``: one conditional UPDATE that can
never take a product below zero, paired in the same transaction with the
``InventoryLog`` row that records it.
"""
import structlog
from sqlalchemy import case, select, update

from ..errors import ConflictError, InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..model import InventoryChange, InventoryLog, Product
from ..utils.db import atomic, utcnow

logger = structlog.get_logger(__name__)


def _current_stock(product_id: int) -> int:
    return db.session.execute(select(Product.stock).where(Product.id == product_id)).scalar_one()


def _apply_delta(product: Product, delta: int, change: InventoryChange, *, sold_delta: int = 0,
                 reference_id=None, reference_type=None, actor_id=None, notes=None) -> InventoryLog | None:
    values = {"stock": Product.stock + delta}
    if sold_delta > 0:
        values["sold_count"] = Product.sold_count + sold_delta
    elif sold_delta < 0:
        values["sold_count"] = case(
            (Product.sold_count + sold_delta >= 0, Product.sold_count + sold_delta),
            else_=0,
        )

    stmt = update(Product).where(Product.id == product.id)
    if delta < 0:
        stmt = stmt.where(Product.stock >= -delta)
    result = db.session.execute(stmt.values(**values).execution_options(synchronize_session=False))
    if result.rowcount != 1:
        return None

    stock_after = _current_stock(product.id)
    db.session.expire(product, ["stock", "sold_count"])

    entry = InventoryLog(
        product_id=product.id,
        type=change,
        quantity=delta,
        stock_before=stock_after - delta,
        stock_after=stock_after,
        reference_id=str(reference_id) if reference_id is not None else None,
        reference_type=reference_type,
        actor_id=actor_id,
        notes=notes,
        created_at=utcnow(),
    )
    db.session.add(entry)
    return entry


def take_stock(product: Product, quantity: int, *, reference_id, reference_type="ORDER") -> InventoryLog:
    """Authoritative sale decrement; raises when the live stock is short."""
    entry = _apply_delta(product, -quantity, InventoryChange.SALE, sold_delta=quantity,
                         reference_id=reference_id, reference_type=reference_type)
    if entry is None:
        raise InsufficientStockError(product, available=_current_stock(product.id))
    return entry


def put_back(product: Product, quantity: int, *, reference_id, reference_type="ORDER_CANCEL",
             actor_id=None, notes=None) -> InventoryLog:
    return _apply_delta(product, quantity, InventoryChange.RETURN, sold_delta=-quantity,
                        reference_id=reference_id, reference_type=reference_type,
                        actor_id=actor_id, notes=notes)


def _get_product(product_id) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFoundError("product_not_found")
    return product


def receive_stock(product_id, quantity: int, *, actor_id=None, reference_id=None, notes=None) -> InventoryLog:
    """Goods in from a supplier (PURCHASE)."""
    if quantity is None or int(quantity) <= 0:
        raise ValidationError("invalid_quantity")
    with atomic():
        product = _get_product(product_id)
        entry = _apply_delta(product, int(quantity), InventoryChange.PURCHASE,
                             reference_id=reference_id, reference_type="PURCHASE",
                             actor_id=actor_id, notes=notes)
    logger.info("Stock received", product_id=product.id, quantity=quantity, stock=entry.stock_after)
    return entry


def adjust_stock(product_id, delta: int, *, actor_id=None, notes=None) -> InventoryLog:
    """Manual correction (ADJUSTMENT); refuses to drive stock negative."""
    delta = int(delta or 0)
    if delta == 0:
        raise ValidationError("invalid_quantity")
    with atomic():
        product = _get_product(product_id)
        entry = _apply_delta(product, delta, InventoryChange.ADJUSTMENT,
                             reference_type="MANUAL", actor_id=actor_id, notes=notes)
        if entry is None:
            raise ConflictError("stock_adjustment_negative", details={"product_id": product.id})
    logger.info("Stock adjusted", product_id=product.id, delta=delta, stock=entry.stock_after, actor_id=actor_id)
    return entry


def ledger_for(product_id) -> list[InventoryLog]:
    return (
        InventoryLog.query.filter(InventoryLog.product_id == product_id)
        .order_by(InventoryLog.created_at.asc(), InventoryLog.id.asc())
        .all()
    )


def replay_stock(product_id) -> int:
    stock = 0
    for entry in ledger_for(product_id):
        stock += entry.quantity
    return stock


def audit_inventory() -> list[dict]:
    """Compare every product's stock with the stock its ledger replays to."""
    report = []
    for product in Product.query.order_by(Product.id.asc()).all():
        replayed = replay_stock(product.id)
        report.append({
            "product_id": product.id,
            "sku": product.sku,
            "stock": product.stock,
            "replayed": replayed,
            "ok": replayed == product.stock,
        })
    mismatched = [r["product_id"] for r in report if not r["ok"]]
    if mismatched:
        logger.warning("Inventory ledger mismatch", product_ids=mismatched)
    return report
