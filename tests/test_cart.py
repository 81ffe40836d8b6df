import pytest

from storefront.errors import (
    CouponMinimumNotMetError,
    EmptyCartError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from storefront.model import Cart, CouponType
from storefront.services import cart_service
from storefront.utils.money import to_minor

from conftest import make_coupon, make_product, make_user


def _check_invariants(cart: Cart):
    assert cart.subtotal == sum(i.unit_price * i.quantity for i in cart.items)
    assert cart.total == cart.subtotal - cart.discount


def test_totals_hold_through_add_update_remove(app):
    user = make_user()
    a = make_product(price=to_minor(250), stock=10)
    b = make_product(price=to_minor(99.5), stock=10)

    cart = cart_service.add_item(user.id, a.id, 2)
    _check_invariants(cart)
    cart = cart_service.add_item(user.id, b.id, 3)
    _check_invariants(cart)
    cart = cart_service.add_item(user.id, a.id, 1)     # merges into the existing line
    assert len(cart.items) == 2
    assert cart.items[0].quantity == 3
    _check_invariants(cart)

    cart = cart_service.update_item(user.id, cart.items[1].id, 5)
    _check_invariants(cart)
    assert cart.subtotal == to_minor(250) * 3 + to_minor(99.5) * 5

    cart = cart_service.remove_item(user.id, cart.items[0].id)
    _check_invariants(cart)
    assert cart.subtotal == to_minor(99.5) * 5


def test_totals_hold_with_coupon(app):
    user = make_user()
    p = make_product(price=to_minor(400), stock=10)
    make_coupon(CouponType.PERCENTAGE, 10, code="TEN")
    cart_service.add_item(user.id, p.id, 1)
    cart = cart_service.apply_coupon(user.id, "ten")
    assert cart.discount == to_minor(40)
    _check_invariants(cart)

    cart = cart_service.add_item(user.id, p.id, 1)
    assert cart.discount == to_minor(80)
    _check_invariants(cart)

    cart = cart_service.remove_coupon(user.id)
    assert cart.discount == 0
    _check_invariants(cart)


def test_recalculate_is_idempotent(app, db):
    user = make_user()
    p = make_product(price=to_minor(120), stock=5)
    cart = cart_service.add_item(user.id, p.id, 2)
    before = (cart.subtotal, cart.discount, cart.total)
    cart_service.recalculate(cart.id)
    cart_service.recalculate(cart.id)
    assert (cart.subtotal, cart.discount, cart.total) == before


def test_add_rejects_quantity_above_stock(app):
    user = make_user()
    p = make_product(stock=2)
    cart_service.add_item(user.id, p.id, 2)
    with pytest.raises(InsufficientStockError):
        cart_service.add_item(user.id, p.id, 1)
    cart = cart_service.get_or_create_cart(user.id)
    assert cart.items[0].quantity == 2


def test_add_rejects_inactive_or_missing_product(app):
    user = make_user()
    p = make_product(is_active=False)
    with pytest.raises(NotFoundError):
        cart_service.add_item(user.id, p.id, 1)
    with pytest.raises(NotFoundError):
        cart_service.add_item(user.id, 99999, 1)


@pytest.mark.parametrize("qty", [0, -1, "abc", None])
def test_add_rejects_bad_quantity(app, qty):
    user = make_user()
    p = make_product()
    with pytest.raises(ValidationError):
        cart_service.add_item(user.id, p.id, qty)


def test_apply_coupon_to_empty_cart(app):
    user = make_user()
    make_coupon(code="EMPTY")
    with pytest.raises(EmptyCartError):
        cart_service.apply_coupon(user.id, "EMPTY")


def test_apply_coupon_below_minimum(app):
    user = make_user()
    p = make_product(price=to_minor(100))
    make_coupon(code="BIG", min_order_value=to_minor(500))
    cart_service.add_item(user.id, p.id, 1)
    with pytest.raises(CouponMinimumNotMetError):
        cart_service.apply_coupon(user.id, "BIG")
    assert cart_service.get_or_create_cart(user.id).coupon is None


def test_summary_reports_shipping(app):
    user = make_user()
    p = make_product(price=to_minor(500))
    cart_service.add_item(user.id, p.id, 1)
    s = cart_service.get_cart_summary(user.id)
    assert s["shipping"] == to_minor(50)
    assert s["free_shipping_remaining"] == to_minor(499)
    assert s["total"] == to_minor(550)

    cart_service.add_item(user.id, p.id, 1)
    s = cart_service.get_cart_summary(user.id)
    assert s["shipping"] == 0
    assert s["free_shipping"] is True


def test_clear_cart(app):
    user = make_user()
    p = make_product()
    cart_service.add_item(user.id, p.id, 1)
    cart = cart_service.clear_cart(user.id)
    assert cart.items == []
    assert cart.total == 0
    assert cart_service.get_cart_summary(user.id)["is_empty"] is True
