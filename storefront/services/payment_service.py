# storefront/services/payment_service.py
"""Reconciling gateway callbacks with orders.

Confirmation and failure are both guarded by a conditional UPDATE on
``payment_status = PENDING``; a duplicate callback finds nothing to change
and returns without touching the order or the stock.
"""
import structlog
from flask import current_app
from sqlalchemy import func, update

from ..errors import (
    AuthorizationError,
    ConflictError,
    ExternalGatewayError,
    NotFoundError,
    PaymentNotCapturedError,
    PaymentVerificationError,
    ValidationError,
)
from ..extensions import db
from ..gateway import PaymentCallback, get_gateway
from ..model import Order, OrderStatus, PaymentMethod, PaymentStatus
from ..utils.db import atomic, utcnow
from ..utils.money import to_minor
from . import order_service

logger = structlog.get_logger(__name__)


def create_payment_intent(order: Order) -> dict:
    gateway = get_gateway()
    intent = gateway.create_payment_intent(
        order.total,
        current_app.config["CURRENCY"],
        receipt=order.order_number,
        notes={"order_number": order.order_number, "user_id": str(order.user_id)},
    )
    with atomic():
        order.gateway_order_id = intent.gateway_order_id
    logger.info("Payment intent created", order_number=order.order_number,
                gateway_order_id=intent.gateway_order_id, amount=intent.amount)
    return {"order_id": order.id, **intent.as_api()}


def _order_for_callback(callback: PaymentCallback) -> Order:
    order = Order.query.filter_by(gateway_order_id=callback.gateway_order_id).first()
    if not order:
        raise NotFoundError("order_not_found")
    return order


def verify_payment(payload: dict) -> dict:
    """Entry point for the client callback: find the order from the gateway order id."""
    callback = PaymentCallback.from_payload(payload)
    if callback is None:
        raise PaymentVerificationError()
    return verify_and_confirm(_order_for_callback(callback).id, payload)


def verify_and_confirm(order_id, payload: dict, now=None) -> dict:
    callback = PaymentCallback.from_payload(payload)
    if callback is None:
        raise PaymentVerificationError()
    order = order_service.get_order(order_id)
    gateway = get_gateway()

    if order.gateway_order_id != callback.gateway_order_id or not gateway.verify_signature(callback):
        logger.warning("Payment signature rejected", order_number=order.order_number,
                       payment_id=callback.payment_id)
        raise PaymentVerificationError()

    if order.payment_status == PaymentStatus.COMPLETED and order.payment_id == callback.payment_id:
        return {"order": order, "already_confirmed": True}

    payment = gateway.fetch_payment(callback.payment_id)
    if not payment.captured:
        logger.warning("Payment not captured", order_number=order.order_number,
                       payment_id=payment.id, gateway_status=payment.status)
        raise PaymentNotCapturedError()

    now = now or utcnow()
    with atomic():
        changed = db.session.execute(
            update(Order)
            .where(
                Order.id == order.id,
                Order.payment_status == PaymentStatus.PENDING,
                Order.status.in_([OrderStatus.PENDING, OrderStatus.CONFIRMED]),
            )
            .values(
                payment_status=PaymentStatus.COMPLETED,
                status=OrderStatus.CONFIRMED,
                confirmed_at=func.coalesce(Order.confirmed_at, now),
                payment_id=payment.id,
                payment_response=payment.raw,
                reservation_expires_at=None,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        ).rowcount
        db.session.expire(order)

    if changed != 1:
        if order.payment_status == PaymentStatus.COMPLETED and order.payment_id == payment.id:
            return {"order": order, "already_confirmed": True}
        # money was captured for an order that already failed or expired
        logger.error("Captured payment for resolved order", order_number=order.order_number,
                     payment_id=payment.id, payment_status=order.payment_status.value)
        raise ConflictError("payment_already_resolved")

    logger.info("Payment confirmed", order_number=order.order_number, payment_id=payment.id)
    return {"order": order, "already_confirmed": False}


def handle_payment_failure(order_id, payload: dict | None = None) -> bool:
    """Mark an online payment FAILED and restock; a no-op once the payment is resolved.

    COD orders have nothing to fail: their stock stays with the order until
    it is cancelled or delivered.
    """
    payload = payload or {}
    order = order_service.get_order(order_id)
    if not order.payment_method.is_online:
        raise ConflictError("online_payment_only")
    with atomic():
        changed = db.session.execute(
            update(Order)
            .where(Order.id == order.id, Order.payment_status == PaymentStatus.PENDING,
                   Order.payment_method.in_(PaymentMethod.online()))
            .values(
                payment_status=PaymentStatus.FAILED,
                payment_response={
                    "error": payload.get("error") or "Payment failed",
                    "payment_id": payload.get("razorpay_payment_id") or payload.get("payment_id"),
                },
                reservation_expires_at=None,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        ).rowcount
        db.session.expire(order)
        if changed == 1:
            order_service.release_inventory(order, reference_type="PAYMENT_FAILED")

    if changed != 1:
        logger.info("Payment failure ignored", order_number=order.order_number,
                    payment_status=order.payment_status.value)
        return False
    logger.info("Payment failed, inventory restored", order_number=order.order_number)
    return True


def handle_payment_failure_callback(payload: dict, user_id=None) -> bool:
    payload = payload or {}
    gateway_order_id = payload.get("razorpay_order_id") or payload.get("gateway_order_id")
    if not gateway_order_id:
        raise ValidationError("invalid_input", details={"field": "razorpay_order_id"})
    order = Order.query.filter_by(gateway_order_id=gateway_order_id).first()
    if not order:
        raise NotFoundError("order_not_found")
    if user_id is not None and order.user_id != user_id:
        raise AuthorizationError()
    return handle_payment_failure(order.id, payload)


def refund_order(order_id, amount=None, reason: str | None = None, actor_id=None, now=None) -> Order:
    """Admin refund of a captured online payment. ``amount`` is in rupees."""
    order = order_service.get_order(order_id)
    if not order.payment_method.is_online or order.payment_status != PaymentStatus.COMPLETED \
            or order.status.is_terminal or not order.payment_id:
        raise ConflictError("refund_not_allowed")

    try:
        minor = order.total if amount in (None, "") else to_minor(amount)
    except ArithmeticError:
        raise ValidationError("invalid_input", details={"field": "amount"})
    if minor <= 0 or minor > order.total:
        raise ValidationError("invalid_input", details={"field": "amount"})

    now = now or utcnow()
    previous = order.status
    previous_notes = order.admin_notes
    response = dict(order.payment_response or {})
    with atomic():
        claimed = db.session.execute(
            update(Order)
            .where(Order.id == order.id, Order.payment_status == PaymentStatus.COMPLETED,
                   Order.status == previous)
            .values(
                payment_status=PaymentStatus.REFUNDED,
                status=OrderStatus.REFUNDED,
                refunded_at=now,
                admin_notes=reason or previous_notes,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        ).rowcount
        db.session.expire(order)
        if claimed != 1:
            raise ConflictError("refund_not_allowed")

    # the claim is committed, so no write lock is held during the gateway call
    try:
        result = get_gateway().refund(order.payment_id, minor)
    except ExternalGatewayError:
        with atomic():
            db.session.execute(
                update(Order)
                .where(Order.id == order.id, Order.payment_status == PaymentStatus.REFUNDED,
                       Order.status == OrderStatus.REFUNDED)
                .values(
                    payment_status=PaymentStatus.COMPLETED,
                    status=previous,
                    refunded_at=None,
                    admin_notes=previous_notes,
                    updated_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            db.session.expire(order)
        logger.warning("Refund failed, claim reverted", order_number=order.order_number, amount=minor)
        raise

    response["refund"] = {"id": result.id, "amount": result.amount, "status": result.status}
    with atomic():
        order.payment_response = response

    logger.info("Order refunded", order_number=order.order_number, amount=minor,
                refund_id=result.id, actor_id=actor_id, from_status=previous.value)
    return order


def get_payment_status(user_id: int, order_id) -> dict:
    order = order_service.get_user_order(user_id, order_id)
    return {
        "order_id": order.id,
        "order_number": order.order_number,
        "payment_method": order.payment_method.value,
        "payment_status": order.payment_status.value,
        "payment_id": order.payment_id,
        "gateway_order_id": order.gateway_order_id,
        "amount": order.total,
        "reservation_expires_at": order.reservation_expires_at.isoformat() if order.reservation_expires_at else None,
    }


def available_payment_methods() -> list[dict]:
    online = get_gateway().enabled
    return [
        {"id": PaymentMethod.COD.value, "name": "Cash on Delivery", "enabled": True},
        {"id": PaymentMethod.UPI.value, "name": "UPI", "enabled": online},
        {"id": PaymentMethod.ONLINE.value, "name": "Card / Netbanking / Wallet", "enabled": online},
    ]


def release_expired_reservations(now=None) -> list[str]:
    """Cancel unpaid online orders whose reservation window has passed."""
    now = now or utcnow()
    expired = (
        Order.query.filter(
            Order.reservation_expires_at.isnot(None),
            Order.reservation_expires_at <= now,
            Order.payment_status == PaymentStatus.PENDING,
            Order.status.in_(order_service.CANCELLABLE),
        )
        .order_by(Order.reservation_expires_at.asc())
        .all()
    )
    released = []
    for order in expired:
        with atomic():
            changed = db.session.execute(
                update(Order)
                .where(Order.id == order.id, Order.payment_status == PaymentStatus.PENDING,
                       Order.status.in_(order_service.CANCELLABLE))
                .values(
                    status=OrderStatus.CANCELLED,
                    payment_status=PaymentStatus.FAILED,
                    cancelled_at=now,
                    cancel_reason="Payment window expired",
                    reservation_expires_at=None,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            ).rowcount
            db.session.expire(order)
            if changed == 1:
                order_service.release_inventory(order, reference_type="RESERVATION_EXPIRED")
        if changed == 1:
            released.append(order.order_number)
            logger.info("Reservation expired", order_number=order.order_number)
    return released
