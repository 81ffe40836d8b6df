# storefront/services/checkout_service.py
"""Cart -> order conversion.

``checkout`` runs as one transaction: if any step fails nothing is persisted
(no order, no order lines, no ledger rows, no coupon use, cart untouched).
"""
from datetime import datetime, timedelta

import structlog
from flask import current_app
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from ..errors import (
    AddressNotFoundError,
    EmptyCartError,
    ExternalGatewayError,
    InsufficientStockError,
    InternalError,
    StorefrontError,
    UnsupportedPaymentMethodError,
    ValidationError,
)
from ..extensions import db
from ..gateway import get_gateway
from ..model import Address, Cart, Order, OrderItem, OrderSequence, PaymentMethod
from ..model.types import parse_enum
from ..utils.db import atomic, utcnow
from ..utils.money import percent_of
from . import cart_service, coupon_service, inventory_service, pricing

logger = structlog.get_logger(__name__)

ORDER_NUMBER_ATTEMPTS = 3


def _load_cart(user_id: int) -> Cart:
    cart = Cart.query.filter_by(user_id=user_id).first()
    if not cart or not cart.items:
        raise EmptyCartError()
    return cart


def _precheck_stock(cart: Cart) -> None:
    """Early, advisory rejection; the decrement in ``checkout`` is what counts."""
    for item in cart.items:
        if item.quantity > item.product.stock:
            raise InsufficientStockError(item.product)


def _resolve_address(user_id: int, address_id) -> Address:
    address = Address.query.filter_by(id=address_id, user_id=user_id, is_deleted=False).first()
    if not address:
        raise AddressNotFoundError()
    return address


def next_order_number(now: datetime) -> str:
    """``ORD-<year>-<6-digit sequence>`` from a per-year counter row.

    The counter is bumped with a single UPDATE inside the caller's transaction,
    so concurrent checkouts serialize on the row and never share a number.
    """
    year = now.year
    for _ in range(ORDER_NUMBER_ATTEMPTS):
        bumped = db.session.execute(
            update(OrderSequence)
            .where(OrderSequence.year == year)
            .values(last_value=OrderSequence.last_value + 1)
            .execution_options(synchronize_session=False)
        ).rowcount
        if bumped:
            value = db.session.execute(
                select(OrderSequence.last_value).where(OrderSequence.year == year)
            ).scalar_one()
            return f"ORD-{year}-{value:06d}"
        try:
            with db.session.begin_nested():
                db.session.add(OrderSequence(year=year, last_value=0))
        except IntegrityError:
            pass  # another checkout created this year's row first
    raise InternalError()


def _order_item(item) -> OrderItem:
    product = item.product
    line_total = item.unit_price * item.quantity
    return OrderItem(
        product_id=product.id,
        product_name=product.name,
        sku=product.sku,
        image=product.thumbnail,
        quantity=item.quantity,
        unit_price=item.unit_price,
        tax=percent_of(line_total, current_app.config["TAX_RATE_PERCENT"]),
        discount=0,
        total=line_total,
    )


def checkout(user_id: int, address_id, payment_method, notes: str | None = None,
             now: datetime | None = None) -> Order:
    method = parse_enum(PaymentMethod, payment_method)
    if method is None:
        raise UnsupportedPaymentMethodError()
    if method.is_online and not get_gateway().enabled:
        raise ValidationError("online_payment_unavailable")
    now = now or utcnow()

    try:
        with atomic():
            cart = _load_cart(user_id)
            _precheck_stock(cart)
            address = _resolve_address(user_id, address_id)

            cart_service.recalculate(cart.id)
            coupon = cart.coupon
            if coupon is not None:
                coupon_service.ensure_redeemable(coupon, cart.subtotal, now)
            totals = pricing.order_totals(cart.subtotal, cart.discount)

            order = Order(
                order_number=next_order_number(now),
                user_id=user_id,
                payment_method=method,
                subtotal=totals["subtotal"],
                shipping=totals["shipping"],
                tax=totals["tax"],
                discount=totals["discount"],
                coupon_discount=totals["discount"],
                total=totals["total"],
                coupon_id=coupon.id if coupon else None,
                coupon_code=coupon.code if coupon else None,
                shipping_address=address.snapshot(),
                customer_notes=notes,
                created_at=now,
                items=[_order_item(it) for it in cart.items],
            )
            if method.is_online:
                ttl = current_app.config["RESERVATION_TTL_MINUTES"]
                order.reservation_expires_at = now + timedelta(minutes=ttl)
            db.session.add(order)
            db.session.flush()

            if coupon is not None:
                coupon_service.redeem(coupon)

            for it in cart.items:
                inventory_service.take_stock(it.product, it.quantity, reference_id=order.id)

            cart_service.empty(cart)
    except StorefrontError as e:
        logger.warning("Checkout aborted", user_id=user_id, kind=e.kind, code=e.code, details=e.details)
        raise

    logger.info("Order created", order_number=order.order_number, user_id=user_id,
                total=order.total, payment_method=method.value)
    return order


def create_order(user_id: int, address_id, payment_method, notes: str | None = None) -> dict:
    """Checkout plus, for online payment, the gateway payment intent."""
    from . import payment_service

    order = checkout(user_id, address_id, payment_method, notes)
    receipt = {
        "id": order.id,
        "order_number": order.order_number,
        "total": order.total,
        "payment_method": order.payment_method.value,
        "estimated_delivery": current_app.config["ESTIMATED_DELIVERY"],
        "payment": None,
    }
    if order.payment_method.is_online:
        try:
            receipt["payment"] = payment_service.create_payment_intent(order)
        except ExternalGatewayError:
            # nobody can pay for this order: give the stock back now
            payment_service.handle_payment_failure(order.id, {"error": "payment intent creation failed"})
            raise
    return receipt


def get_checkout_summary(user_id: int) -> dict:
    cart = _load_cart(user_id)
    _precheck_stock(cart)
    cart_service.recalculate(cart.id)
    totals = pricing.order_totals(cart.subtotal, cart.discount)
    addresses = (
        Address.query.filter_by(user_id=user_id, is_deleted=False)
        .order_by(Address.is_default.desc(), Address.created_at.desc())
        .all()
    )
    return {
        "items": cart.items,
        "coupon": cart.coupon,
        **totals,
        "addresses": addresses,
        "free_shipping": totals["shipping"] == 0,
    }
