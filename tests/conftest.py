import itertools

import pytest
from flask_jwt_extended import create_access_token

from storefront import create_app
from storefront.config import TestConfig
from storefront.extensions import db as _db
from storefront.gateway.fake_adapter import FakeGateway
from storefront.model import Address, Coupon, CouponType, Product, User
from storefront.services import cart_service, inventory_service

_seq = itertools.count(1)


@pytest.fixture
def gateway():
    return FakeGateway(TestConfig.RAZORPAY_KEY_ID, TestConfig.RAZORPAY_KEY_SECRET)


@pytest.fixture
def app(tmp_path, gateway):
    app = create_app(
        TestConfig,
        overrides={"SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'storefront.db'}"},
        gateway=gateway,
    )
    with app.app_context():
        yield app
        _db.session.remove()
        _db.drop_all()
        _db.engine.dispose()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def client(app):
    return app.test_client()


# ---- factories -------------------------------------------------------------

def make_user(role="user", **kw):
    n = next(_seq)
    u = User(name=kw.pop("name", f"User {n}"), phone=kw.pop("phone", f"98250{n:05d}"),
             email=kw.pop("email", f"user{n}@example.com"), role=role, **kw)
    _db.session.add(u)
    _db.session.commit()
    return u


def make_product(price=50000, stock=10, **kw):
    """Products start empty and receive their stock through the ledger."""
    n = next(_seq)
    p = Product(name=kw.pop("name", f"Clutch Plate {n}"), sku=kw.pop("sku", f"SKU-{n:05d}"),
                price=price, stock=0, **kw)
    _db.session.add(p)
    _db.session.commit()
    if stock:
        inventory_service.receive_stock(p.id, stock)
    return p


def make_address(user, state="Gujarat", **kw):
    a = Address(user_id=user.id, full_name=user.name, phone=user.phone,
                address_line1=kw.pop("address_line1", "12 Station Road"),
                city=kw.pop("city", "Rajkot"), district=kw.pop("district", "Rajkot"),
                state=state, pincode=kw.pop("pincode", "360001"), **kw)
    _db.session.add(a)
    _db.session.commit()
    return a


def make_coupon(ctype=CouponType.PERCENTAGE, value=10, **kw):
    n = next(_seq)
    c = Coupon(code=kw.pop("code", f"SAVE{n}"), ctype=ctype, value=value, **kw)
    _db.session.add(c)
    _db.session.commit()
    return c


def fill_cart(user, *lines):
    """``lines`` are (product, quantity) pairs."""
    cart = None
    for product, qty in lines:
        cart = cart_service.add_item(user.id, product.id, qty)
    return cart


def auth_headers(user):
    token = create_access_token(identity=str(user.id))
    return {"Authorization": f"Bearer {token}", "Accept-Language": "en"}
