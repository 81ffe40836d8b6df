import threading
from datetime import datetime

import pytest

from storefront.errors import (
    AddressNotFoundError,
    ConflictError,
    CouponExhaustedError,
    EmptyCartError,
    ExternalGatewayError,
    InsufficientStockError,
    ValidationError,
)
from storefront.model import (
    Cart,
    Coupon,
    CouponType,
    InventoryChange,
    InventoryLog,
    Order,
    OrderItem,
    PaymentStatus,
    Product,
)
from storefront.services import cart_service, checkout_service, inventory_service
from storefront.utils.money import to_minor

from conftest import fill_cart, make_address, make_coupon, make_product, make_user


def _sales(product_id):
    return InventoryLog.query.filter_by(product_id=product_id, type=InventoryChange.SALE).all()


def test_cod_checkout_snapshots_everything(app, db):
    user = make_user()
    addr = make_address(user)
    p = make_product(price=to_minor(600), stock=5, thumbnail="/img/plate.jpg")
    coupon = make_coupon(CouponType.FLAT, to_minor(300), code="FLAT300")
    fill_cart(user, (p, 2))
    cart_service.apply_coupon(user.id, "FLAT300")

    order = checkout_service.checkout(user.id, addr.id, "cod", notes="ring before delivery",
                                      now=datetime(2026, 3, 1, 10, 0))

    assert order.order_number == "ORD-2026-000001"
    assert order.subtotal == to_minor(1200)
    assert order.shipping == 0
    assert order.tax == to_minor(216)
    assert order.discount == to_minor(300)
    assert order.total == to_minor(1200 - 300 + 216)
    assert order.coupon_code == "FLAT300"
    assert order.payment_status == PaymentStatus.PENDING
    assert order.reservation_expires_at is None
    assert order.customer_notes == "ring before delivery"

    item = order.items[0]
    assert (item.product_name, item.sku, item.image) == (p.name, p.sku, "/img/plate.jpg")
    assert item.quantity == 2
    assert item.total == to_minor(1200)

    assert db.session.get(Product, p.id).stock == 3
    assert db.session.get(Product, p.id).sold_count == 2
    assert len(_sales(p.id)) == 1
    assert db.session.get(Coupon, coupon.id).used_count == 1

    cart = Cart.query.filter_by(user_id=user.id).one()
    assert cart.items == [] and cart.coupon is None


def test_address_edits_do_not_reach_placed_orders(app, db):
    user = make_user()
    addr = make_address(user, city="Rajkot")
    fill_cart(user, (make_product(), 1))
    order = checkout_service.checkout(user.id, addr.id, "COD")

    addr.city = "Surat"
    db.session.commit()
    assert db.session.get(Order, order.id).shipping_address["city"] == "Rajkot"


def test_order_numbers_are_sequential_per_year(app):
    user = make_user()
    addr = make_address(user)
    p = make_product(stock=10)
    numbers = []
    for _ in range(3):
        fill_cart(user, (p, 1))
        numbers.append(checkout_service.checkout(user.id, addr.id, "COD", now=datetime(2026, 5, 1)).order_number)
    fill_cart(user, (p, 1))
    numbers.append(checkout_service.checkout(user.id, addr.id, "COD", now=datetime(2027, 1, 1)).order_number)
    assert numbers == ["ORD-2026-000001", "ORD-2026-000002", "ORD-2026-000003", "ORD-2027-000001"]


def test_rejects_unknown_payment_method(app):
    user = make_user()
    addr = make_address(user)
    fill_cart(user, (make_product(), 1))
    with pytest.raises(ValidationError):
        checkout_service.checkout(user.id, addr.id, "BITCOIN")


def test_rejects_empty_cart(app):
    user = make_user()
    addr = make_address(user)
    with pytest.raises(EmptyCartError):
        checkout_service.checkout(user.id, addr.id, "COD")


def test_rejects_foreign_or_deleted_address(app):
    user, other = make_user(), make_user()
    fill_cart(user, (make_product(), 1))
    with pytest.raises(AddressNotFoundError):
        checkout_service.checkout(user.id, make_address(other).id, "COD")
    with pytest.raises(AddressNotFoundError):
        checkout_service.checkout(user.id, make_address(user, is_deleted=True).id, "COD")


def test_precheck_rejects_early(app):
    user = make_user()
    addr = make_address(user)
    p = make_product(stock=3)
    fill_cart(user, (p, 3))
    inventory_service.adjust_stock(p.id, -2)
    with pytest.raises(InsufficientStockError):
        checkout_service.checkout(user.id, addr.id, "COD")


def test_failed_authoritative_check_leaves_no_trace(app, db, monkeypatch):
    user = make_user()
    addr = make_address(user)
    a = make_product(stock=5)
    b = make_product(stock=5)
    coupon = make_coupon(CouponType.PERCENTAGE, 5, code="FIVE")
    fill_cart(user, (a, 1), (b, 3))
    cart_service.apply_coupon(user.id, "FIVE")

    # stock drops after the cart was built and the advisory check is skipped,
    # so only the decrement inside the transaction can catch it
    inventory_service.adjust_stock(b.id, -4)
    monkeypatch.setattr(checkout_service, "_precheck_stock", lambda cart: None)

    with pytest.raises(ConflictError):
        checkout_service.checkout(user.id, addr.id, "COD")

    db.session.expire_all()
    assert Order.query.count() == 0
    assert OrderItem.query.count() == 0
    assert _sales(a.id) == [] and _sales(b.id) == []
    assert db.session.get(Product, a.id).stock == 5
    assert db.session.get(Product, b.id).stock == 1
    assert db.session.get(Coupon, coupon.id).used_count == 0
    cart = Cart.query.filter_by(user_id=user.id).one()
    assert [i.quantity for i in cart.items] == [1, 3]
    assert cart.coupon_id == coupon.id


def test_coupon_exhausted_at_checkout(app, db):
    user = make_user()
    addr = make_address(user)
    p = make_product(stock=5)
    coupon = make_coupon(code="ONCE", max_uses=1)
    fill_cart(user, (p, 1))
    cart_service.apply_coupon(user.id, "ONCE")

    coupon.used_count = 1   # someone else used it meanwhile
    db.session.commit()

    with pytest.raises(CouponExhaustedError):
        checkout_service.checkout(user.id, addr.id, "COD")
    assert Order.query.count() == 0
    assert db.session.get(Product, p.id).stock == 5


def test_concurrent_checkouts_for_last_unit(app, db):
    p = make_product(stock=1)
    buyers = []
    for _ in range(2):
        u = make_user()
        a = make_address(u)
        fill_cart(u, (p, 1))
        buyers.append((u.id, a.id))
    product_id = p.id
    db.session.remove()

    barrier = threading.Barrier(2)
    outcomes = []

    def buy(user_id, address_id):
        with app.app_context():
            barrier.wait()
            try:
                checkout_service.checkout(user_id, address_id, "COD")
                outcomes.append("ok")
            except ConflictError:
                outcomes.append("conflict")

    threads = [threading.Thread(target=buy, args=b) for b in buyers]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert sorted(outcomes) == ["conflict", "ok"]
    assert db.session.get(Product, product_id).stock == 0
    assert len(_sales(product_id)) == 1
    assert Order.query.count() == 1


def test_online_order_reserves_and_creates_intent(app, gateway):
    user = make_user()
    addr = make_address(user)
    fill_cart(user, (make_product(price=to_minor(200)), 1))

    receipt = checkout_service.create_order(user.id, addr.id, "UPI")
    order = Order.query.filter_by(order_number=receipt["order_number"]).one()

    assert order.reservation_expires_at is not None
    assert (order.reservation_expires_at - order.created_at).total_seconds() == 30 * 60
    assert receipt["payment"]["gateway_order_id"] == order.gateway_order_id
    assert receipt["payment"]["amount_in_paise"] == order.total
    assert gateway.calls == ["create_payment_intent"]


def test_intent_failure_releases_stock(app, db, gateway):
    user = make_user()
    addr = make_address(user)
    p = make_product(stock=4)
    fill_cart(user, (p, 2))
    gateway.fail_on.add("create_payment_intent")

    with pytest.raises(ExternalGatewayError):
        checkout_service.create_order(user.id, addr.id, "ONLINE")

    order = Order.query.one()
    assert order.payment_status == PaymentStatus.FAILED
    assert db.session.get(Product, p.id).stock == 4


def test_online_checkout_needs_configured_gateway(app, gateway):
    gateway.key_secret = ""
    user = make_user()
    addr = make_address(user)
    fill_cart(user, (make_product(), 1))
    with pytest.raises(ValidationError):
        checkout_service.checkout(user.id, addr.id, "ONLINE")
    assert checkout_service.checkout(user.id, addr.id, "COD").id


def test_checkout_summary(app):
    user = make_user()
    make_address(user, state="Maharashtra")
    fill_cart(user, (make_product(price=to_minor(100)), 2))
    s = checkout_service.get_checkout_summary(user.id)
    assert s["subtotal"] == to_minor(200)
    assert s["shipping"] == to_minor(50)
    assert s["tax"] == to_minor(36)
    assert s["total"] == to_minor(286)
    assert len(s["addresses"]) == 1


def test_checkout_summary_does_not_commit(app, db):
    user = make_user()
    fill_cart(user, (make_product(price=to_minor(100)), 2))
    db.session.execute(Cart.__table__.update().where(Cart.user_id == user.id).values(subtotal=0, total=0))
    db.session.commit()

    assert checkout_service.get_checkout_summary(user.id)["subtotal"] == to_minor(200)

    db.session.rollback()
    assert Cart.query.filter_by(user_id=user.id).one().subtotal == 0
