# storefront/services/order_service.py
"""Order lifecycle: the transition table, cancellation and read models."""
from datetime import timedelta

import structlog
from flask import current_app
from sqlalchemy import func, or_, update

from ..errors import AuthorizationError, InvalidTransitionError, NotFoundError, ValidationError
from ..extensions import db
from ..model import Order, OrderStatus, PaymentStatus, Product, User
from ..model.types import parse_enum
from ..utils.db import atomic, utcnow
from . import inventory_service, pricing

logger = structlog.get_logger(__name__)

S = OrderStatus

# REFUNDED is left out on purpose: only refund_order may enter it.
TRANSITIONS = {
    S.PENDING: {S.CONFIRMED, S.CANCELLED},
    S.CONFIRMED: {S.PROCESSING, S.CANCELLED},
    S.PROCESSING: {S.SHIPPED, S.OUT_FOR_DELIVERY, S.CANCELLED},
    S.SHIPPED: {S.OUT_FOR_DELIVERY, S.DELIVERED},
    S.OUT_FOR_DELIVERY: {S.DELIVERED},
    S.DELIVERED: set(),
    S.CANCELLED: set(),
    S.REFUNDED: set(),
}

EXTRA_FIELDS = ("tracking_number", "courier_name", "estimated_delivery", "admin_notes", "cancel_reason")

CANCELLABLE = tuple(s for s, targets in TRANSITIONS.items() if S.CANCELLED in targets)


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    if target == current:
        return not current.is_terminal
    return target in TRANSITIONS[current]


def _entry_values(order: Order, target: OrderStatus, now) -> dict:
    values = {}
    if target == S.CONFIRMED:
        if order.confirmed_at is None:
            values["confirmed_at"] = now
    elif target == S.PROCESSING:
        values["processed_at"] = now
    elif target in (S.SHIPPED, S.OUT_FOR_DELIVERY):
        if order.shipped_at is None:
            values["shipped_at"] = now
    elif target == S.DELIVERED:
        values["delivered_at"] = now
        # COD is collected at the door, so delivery settles payment
        values["payment_status"] = PaymentStatus.PAID
    elif target == S.CANCELLED:
        values["cancelled_at"] = now
    return values


def transition(order: Order, target: OrderStatus, now=None, extras: dict | None = None) -> Order:
    """Move ``order`` to ``target`` inside the caller's transaction.

    The write is a compare-and-set on the status the caller saw, so two racing
    transitions from the same state cannot both win.
    """
    current = order.status
    if not can_transition(current, target):
        raise InvalidTransitionError(current, target)
    now = now or utcnow()

    guards = [Order.id == order.id, Order.status == current]
    if target != current and target != S.CANCELLED:
        # released stock may already be sold to someone else
        if order.inventory_released_at is not None:
            raise InvalidTransitionError(current, target, code="inventory_released")
        guards.append(Order.inventory_released_at.is_(None))
        # an online order leaves PENDING only through a captured payment
        if current == S.PENDING and order.payment_method.is_online:
            if order.payment_status != PaymentStatus.COMPLETED:
                raise InvalidTransitionError(current, target, code="payment_not_completed")
            guards.append(Order.payment_status == PaymentStatus.COMPLETED)

    values = {k: v for k, v in (extras or {}).items() if k in EXTRA_FIELDS and v is not None}
    if target != current:
        values.update(_entry_values(order, target, now))
        values["status"] = target
    values["updated_at"] = now

    changed = db.session.execute(
        update(Order)
        .where(*guards)
        .values(**values)
        .execution_options(synchronize_session=False)
    ).rowcount
    db.session.expire(order)
    if changed != 1:
        raise InvalidTransitionError(order.status, target)
    return order


def release_inventory(order: Order, *, reference_type="ORDER_CANCEL", actor_id=None, notes=None) -> bool:
    """Put every line's quantity back on the shelf, at most once per order."""
    claimed = db.session.execute(
        update(Order)
        .where(Order.id == order.id, Order.inventory_released_at.is_(None))
        .values(inventory_released_at=utcnow())
        .execution_options(synchronize_session=False)
    ).rowcount
    if claimed != 1:
        return False
    for item in order.items:
        product = db.session.get(Product, item.product_id)
        inventory_service.put_back(product, item.quantity, reference_id=order.id,
                                   reference_type=reference_type, actor_id=actor_id, notes=notes)
    db.session.expire(order, ["inventory_released_at"])
    return True


def get_order(order_id) -> Order:
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("order_not_found")
    return order


def get_user_order(user_id: int, order_id) -> Order:
    order = get_order(order_id)
    if order.user_id != user_id:
        raise AuthorizationError()
    return order


def cancel_order(user_id: int, order_id, reason: str | None = None) -> Order:
    """Customer cancellation: PENDING only, and the stock goes back."""
    order = get_user_order(user_id, order_id)
    if order.status != S.PENDING:
        raise InvalidTransitionError(order.status, S.CANCELLED, code="cancel_pending_only")

    with atomic():
        transition(order, S.CANCELLED, extras={"cancel_reason": reason or "Cancelled by customer"})
        release_inventory(order, reference_type="ORDER_CANCEL", actor_id=user_id, notes=reason)

    logger.info("Order cancelled", order_number=order.order_number, user_id=user_id, by="customer")
    return order


def update_order_status(order_id, new_status, extras: dict | None = None, actor_id=None) -> Order:
    target = parse_enum(OrderStatus, new_status)
    if target is None:
        raise ValidationError("invalid_status")
    order = get_order(order_id)
    previous = order.status

    with atomic():
        transition(order, target, extras=extras)
        if target == S.CANCELLED and current_app.config.get("ADMIN_CANCEL_RESTOCKS", True):
            release_inventory(order, reference_type="ADMIN_CANCEL", actor_id=actor_id,
                              notes=(extras or {}).get("cancel_reason"))

    logger.info("Order status updated", order_number=order.order_number,
                from_status=previous.value, to_status=target.value, actor_id=actor_id)
    return order


# ---- read side -------------------------------------------------------------

def timeline(order: Order) -> list[dict]:
    steps = [
        (S.PENDING, order.created_at),
        (S.CONFIRMED, order.confirmed_at),
        (S.PROCESSING, order.processed_at),
        (S.SHIPPED, order.shipped_at),
        (S.DELIVERED, order.delivered_at),
        (S.CANCELLED, order.cancelled_at),
        (S.REFUNDED, order.refunded_at),
    ]
    return [
        {"status": status.value, "at": at.isoformat()}
        for status, at in steps
        if at is not None
    ]


def _paginate(query, page, limit):
    page = max(int(page or 1), 1)
    per = min(max(int(limit or 10), 1), 100)
    paged = query.paginate(page=page, per_page=per, error_out=False)
    return {
        "items": paged.items,
        "page": page,
        "limit": per,
        "total": paged.total,
        "pages": paged.pages,
    }


def list_user_orders(user_id: int, page=1, limit=10, status=None) -> dict:
    q = Order.query.filter(Order.user_id == user_id)
    if status:
        wanted = parse_enum(OrderStatus, status)
        if wanted is None:
            raise ValidationError("invalid_status")
        q = q.filter(Order.status == wanted)
    return _paginate(q.order_by(Order.created_at.desc(), Order.id.desc()), page, limit)


def get_order_details(user_id: int, order_id) -> dict:
    order = get_user_order(user_id, order_id)
    return {
        "order": order,
        "timeline": timeline(order),
        "can_cancel": order.status == S.PENDING,
    }


def track_order(user_id: int, order_id) -> dict:
    order = get_user_order(user_id, order_id)
    return {
        "order_number": order.order_number,
        "status": order.status.value,
        "tracking_number": order.tracking_number,
        "courier_name": order.courier_name,
        "estimated_delivery": order.estimated_delivery,
        "timeline": timeline(order),
    }


def get_invoice(user_id: int, order_id) -> dict:
    order = get_user_order(user_id, order_id)
    address = order.shipping_address or {}
    return {
        "invoice_number": f"INV-{order.order_number}",
        "invoice_date": order.created_at.date().isoformat(),
        "order_number": order.order_number,
        "seller": current_app.config["SELLER"],
        "buyer": address,
        "items": [
            {
                "name": it.product_name,
                "sku": it.sku,
                "hsn": "8708",  # parts and accessories of tractors
                "quantity": it.quantity,
                "unit_price": it.unit_price,
                "tax": it.tax,
                "total": it.total,
            }
            for it in order.items
        ],
        "subtotal": order.subtotal,
        "discount": order.discount,
        "shipping": order.shipping,
        "tax": order.tax,
        "gst": pricing.gst_split(order.tax, address.get("state")),
        "total": order.total,
        "payment_method": order.payment_method.value,
        "payment_status": order.payment_status.value,
    }


# ---- admin -----------------------------------------------------------------

def list_all_orders(page=1, limit=20, status=None, search=None) -> dict:
    q = Order.query.outerjoin(User, User.id == Order.user_id)
    if status:
        wanted = parse_enum(OrderStatus, status)
        if wanted is None:
            raise ValidationError("invalid_status")
        q = q.filter(Order.status == wanted)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(
            Order.order_number.ilike(like),
            User.name.ilike(like),
            User.phone.ilike(like),
            User.email.ilike(like),
        ))
    return _paginate(q.order_by(Order.created_at.desc(), Order.id.desc()), page, limit)


def get_order_stats(days=30, now=None) -> dict:
    since = (now or utcnow()) - timedelta(days=int(days))
    window = Order.query.filter(Order.created_at >= since)

    by_status = {s.value: 0 for s in OrderStatus}
    rows = (
        db.session.query(Order.status, func.count(Order.id))
        .filter(Order.created_at >= since)
        .group_by(Order.status)
        .all()
    )
    for status, count in rows:
        by_status[status.value] = count

    revenue = (
        db.session.query(func.coalesce(func.sum(Order.total), 0))
        .filter(Order.created_at >= since,
                Order.payment_status.in_([PaymentStatus.COMPLETED, PaymentStatus.PAID]))
        .scalar()
    )
    total_orders = window.count()
    return {
        "days": int(days),
        "total_orders": total_orders,
        "by_status": by_status,
        "revenue": int(revenue),
        "average_order_value": int(revenue) // total_orders if total_orders else 0,
    }
