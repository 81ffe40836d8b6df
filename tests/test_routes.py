from storefront.model import Order, OrderStatus, PaymentStatus, Product
from storefront.utils.money import to_minor

from conftest import auth_headers, fill_cart, make_address, make_coupon, make_product, make_user


def test_health(client):
    assert client.get("/").get_json()["ok"] is True


def test_cart_requires_token(client):
    assert client.get("/cart").status_code == 401


def test_cart_flow_over_http(client, app):
    user = make_user()
    p = make_product(price=to_minor(450), stock=3)
    make_coupon(code="TEN")
    h = auth_headers(user)

    r = client.post("/cart/items", json={"product_id": p.id, "quantity": 2}, headers=h)
    assert r.status_code == 201
    body = r.get_json()
    assert body["status"] is True
    assert body["data"]["subtotal"] == 900.0
    item_id = body["data"]["items"][0]["id"]

    r = client.post("/cart/coupon", json={"code": "ten"}, headers=h)
    assert r.get_json()["data"]["discount"] == 90.0

    r = client.get("/cart/summary", headers=h)
    assert r.get_json()["data"]["shipping"] == 50.0

    r = client.patch(f"/cart/items/{item_id}", json={"quantity": 5}, headers=h)
    assert r.status_code == 409
    err = r.get_json()
    assert err["status"] is False
    assert err["data"]["error"]["kind"] == "conflict"
    assert err["data"]["error"]["code"] == "out_of_stock"


def test_error_messages_follow_accept_language(client):
    user = make_user()
    h = {**auth_headers(user), "Accept-Language": "gu-IN,gu;q=0.9"}
    r = client.post("/orders", json={"address_id": 1, "payment_method": "COD"}, headers=h)
    assert r.status_code == 422
    assert r.get_json()["message"] == "કાર્ટ ખાલી છે"
    assert r.get_json()["data"]["error"]["kind"] == "validation"


def test_checkout_and_cancel_over_http(client, app):
    user = make_user()
    addr = make_address(user)
    fill_cart(user, (make_product(price=to_minor(200)), 1))
    h = auth_headers(user)

    r = client.get("/orders/checkout-summary", headers=h)
    assert r.get_json()["data"]["total"] == 286.0

    r = client.post("/orders", json={"address_id": addr.id, "payment_method": "COD"}, headers=h)
    assert r.status_code == 201
    order_id = r.get_json()["data"]["id"]
    assert r.get_json()["data"]["total"] == 286.0

    assert client.get("/orders", headers=h).get_json()["data"]["pagination"]["total"] == 1
    assert client.get(f"/orders/{order_id}/invoice", headers=h).get_json()["data"]["gst"]["cgst"] == 18.0

    r = client.post(f"/orders/{order_id}/cancel", json={"reason": "ordered twice"}, headers=h)
    assert r.status_code == 200
    assert r.get_json()["data"]["status"] == "CANCELLED"

    r = client.post(f"/orders/{order_id}/cancel", headers=h)
    assert r.status_code == 409


def test_other_users_order_is_forbidden(client, app):
    owner, stranger = make_user(), make_user()
    fill_cart(owner, (make_product(), 1))
    r = client.post("/orders", json={"address_id": make_address(owner).id, "payment_method": "COD"},
                    headers=auth_headers(owner))
    order_id = r.get_json()["data"]["id"]
    assert client.get(f"/orders/{order_id}", headers=auth_headers(stranger)).status_code == 403


def test_admin_routes(client, app, db):
    user, admin = make_user(), make_user(role="admin")
    p = make_product(stock=5)
    fill_cart(user, (p, 1))
    order_id = client.post(
        "/orders", json={"address_id": make_address(user).id, "payment_method": "COD"},
        headers=auth_headers(user),
    ).get_json()["data"]["id"]

    assert client.get("/admin/orders", headers=auth_headers(user)).status_code == 403

    ha = auth_headers(admin)
    r = client.patch(f"/admin/orders/{order_id}/status", json={"status": "CONFIRMED"}, headers=ha)
    assert r.status_code == 200
    assert db.session.get(Order, order_id).status == OrderStatus.CONFIRMED

    r = client.patch(f"/admin/orders/{order_id}/status", json={"status": "PENDING"}, headers=ha)
    assert r.status_code == 409
    assert r.get_json()["data"]["error"]["code"] == "invalid_transition"

    assert client.get("/admin/orders/stats", headers=ha).get_json()["data"]["total_orders"] == 1

    r = client.post(f"/admin/inventory/{p.id}/receive", json={"quantity": 10}, headers=ha)
    assert r.get_json()["data"]["stock_after"] == 14
    r = client.get(f"/admin/inventory/{p.id}/ledger", headers=ha)
    assert r.get_json()["data"]["replayed_stock"] == 14
    assert client.get("/admin/inventory/audit", headers=ha).get_json()["data"]["ok"] is True

    r = client.post("/admin/coupons", json={"code": "monsoon", "type": "FLAT", "value": 150}, headers=ha)
    assert r.status_code == 201
    assert r.get_json()["data"]["code"] == "MONSOON"
    assert len(client.get("/admin/coupons", headers=ha).get_json()["data"]["items"]) == 1


def test_online_payment_over_http(client, app, gateway):
    user = make_user()
    fill_cart(user, (make_product(), 1))
    h = auth_headers(user)
    r = client.post("/orders", json={"address_id": make_address(user).id, "payment_method": "UPI"}, headers=h)
    data = r.get_json()["data"]
    payload = gateway.capture(data["payment"]["gateway_order_id"])

    r = client.post("/payment/verify", json=payload, headers=h)
    assert r.status_code == 200
    assert r.get_json()["data"]["payment_status"] == "COMPLETED"

    r = client.get(f"/payment/status/{data['id']}", headers=h)
    assert r.get_json()["data"]["payment_status"] == "COMPLETED"

    methods = client.get("/payment/methods").get_json()["data"]["methods"]
    assert {m["id"] for m in methods} == {"COD", "UPI", "ONLINE"}


def test_cod_order_cannot_be_failed_over_http(client, app, db):
    user = make_user()
    p = make_product(stock=3)
    fill_cart(user, (p, 2))
    h = auth_headers(user)
    r = client.post("/orders", json={"address_id": make_address(user).id, "payment_method": "COD"}, headers=h)
    order_id = r.get_json()["data"]["id"]

    r = client.post("/payment/failed", json={"order_id": order_id}, headers=h)
    assert r.status_code == 422
    assert db.session.get(Order, order_id).payment_status == PaymentStatus.PENDING
    assert db.session.get(Product, p.id).stock == 1
