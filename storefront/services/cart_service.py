# storefront/services/cart_service.py
import structlog
from sqlalchemy.exc import IntegrityError

from ..errors import EmptyCartError, InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..model import Cart, CartItem, Product
from ..utils.db import atomic, utcnow
from . import coupon_service, pricing

logger = structlog.get_logger(__name__)


def get_or_create_cart(user_id: int) -> Cart:
    cart = Cart.query.filter_by(user_id=user_id).first()
    if cart:
        return cart
    cart = Cart(user_id=user_id)
    db.session.add(cart)
    try:
        db.session.commit()
    except IntegrityError:
        # created by a concurrent request
        db.session.rollback()
        cart = Cart.query.filter_by(user_id=user_id).one()
    return cart


def recalculate(cart_id: int) -> Cart:
    """Recompute subtotal/discount/total from the current lines and coupon.

    Pure recompute: idempotent, does not look at stock, only writes the three
    derived fields.
    """
    cart = db.session.get(Cart, cart_id)
    if cart is None:
        raise NotFoundError("cart_empty")

    subtotal = 0
    for it in cart.items:
        it.line_total = it.unit_price * it.quantity
        subtotal += it.line_total

    discount = coupon_service.discount_for(cart.coupon, subtotal, pricing.shipping_for(subtotal))

    cart.subtotal = subtotal
    cart.discount = discount
    cart.total = subtotal - discount
    db.session.flush()
    return cart


def empty(cart: Cart) -> None:
    """Drop all lines and the coupon; the cart row itself stays."""
    cart.items.clear()
    cart.coupon = None
    cart.subtotal = 0
    cart.discount = 0
    cart.total = 0
    db.session.flush()


# ---- line items ------------------------------------------------------------

def _valid_quantity(quantity) -> int:
    try:
        qty = int(quantity)
    except (TypeError, ValueError):
        raise ValidationError("invalid_quantity")
    if qty < 1:
        raise ValidationError("invalid_quantity")
    return qty


def _find_item(cart: Cart, item_id: int) -> CartItem:
    item = next((i for i in cart.items if i.id == item_id), None)
    if not item:
        raise NotFoundError("cart_item_not_found")
    return item


def add_item(user_id: int, product_id: int, quantity=1) -> Cart:
    qty = _valid_quantity(quantity)
    cart = get_or_create_cart(user_id)
    with atomic():
        product = db.session.get(Product, product_id)
        if not product or product.is_active is False:
            raise NotFoundError("product_not_found")
        if product.stock < 1:
            raise InsufficientStockError(product)

        item = next((i for i in cart.items if i.product_id == product.id), None)
        new_qty = (item.quantity if item else 0) + qty
        if new_qty > product.stock:
            raise InsufficientStockError(product)

        if item:
            item.quantity = new_qty
            item.unit_price = product.price
        else:
            cart.items.append(CartItem(product_id=product.id, quantity=qty, unit_price=product.price))
        recalculate(cart.id)

    logger.info("Cart item added", user_id=user_id, product_id=product_id, quantity=qty)
    return cart


def update_item(user_id: int, item_id: int, quantity) -> Cart:
    qty = _valid_quantity(quantity)
    cart = get_or_create_cart(user_id)
    with atomic():
        item = _find_item(cart, item_id)
        if qty > item.product.stock:
            raise InsufficientStockError(item.product)
        item.quantity = qty
        recalculate(cart.id)
    return cart


def remove_item(user_id: int, item_id: int) -> Cart:
    cart = get_or_create_cart(user_id)
    with atomic():
        item = _find_item(cart, item_id)
        cart.items.remove(item)
        recalculate(cart.id)
    return cart


def clear_cart(user_id: int) -> Cart:
    cart = get_or_create_cart(user_id)
    with atomic():
        empty(cart)
    return cart


# ---- coupon ----------------------------------------------------------------

def apply_coupon(user_id: int, code: str, now=None) -> Cart:
    cart = get_or_create_cart(user_id)
    if not cart.items:
        raise EmptyCartError()
    with atomic():
        coupon = coupon_service.find_by_code(code)
        recalculate(cart.id)
        coupon_service.ensure_redeemable(coupon, cart.subtotal, now or utcnow())
        cart.coupon = coupon
        recalculate(cart.id)

    logger.info("Coupon applied", user_id=user_id, code=coupon.code, discount=cart.discount)
    return cart


def remove_coupon(user_id: int) -> Cart:
    cart = get_or_create_cart(user_id)
    with atomic():
        cart.coupon = None
        recalculate(cart.id)
    return cart


def get_cart_summary(user_id: int) -> dict:
    cart = get_or_create_cart(user_id)
    if not cart.items:
        return {"is_empty": True, "item_count": 0, "subtotal": 0, "discount": 0, "shipping": 0, "total": 0}
    shipping = pricing.shipping_for(cart.subtotal)
    return {
        "is_empty": False,
        "item_count": cart.item_count,
        "items": cart.items,
        "coupon": cart.coupon,
        "subtotal": cart.subtotal,
        "discount": cart.discount,
        "shipping": shipping,
        "total": cart.subtotal - cart.discount + shipping,
        "free_shipping": shipping == 0,
        "free_shipping_remaining": pricing.free_shipping_remaining(cart.subtotal),
    }
