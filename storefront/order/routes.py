# storefront/order/routes.py
from flask import g, request

from ..services import checkout_service, order_service, payment_service
from ..utils.api import body, msg, ok
from ..utils.decorators import login_required, role_required
from ..utils.money import to_api
from . import admin_bp, bp

MONEY_KEYS = ("subtotal", "discount", "shipping", "tax", "total", "unit_price")


def _rupees(d: dict) -> dict:
    return {k: to_api(v) if k in MONEY_KEYS else v for k, v in d.items()}


def _page_api(page: dict) -> dict:
    return {
        "items": [o.as_api() for o in page["items"]],
        "pagination": {k: page[k] for k in ("page", "limit", "total", "pages")},
    }


# ---- customer --------------------------------------------------------------

@bp.get("")
@login_required
def list_orders():
    """
    Query params:
      - page, limit
      - status=PENDING|CONFIRMED|...
    """
    page = order_service.list_user_orders(
        g.user.id,
        page=request.args.get("page", 1, type=int),
        limit=request.args.get("limit", 10, type=int),
        status=request.args.get("status"),
    )
    return ok("orders", _page_api(page))


@bp.get("/checkout-summary")
@login_required
def checkout_summary():
    s = checkout_service.get_checkout_summary(g.user.id)
    return ok("checkout summary", {
        **_rupees({k: s[k] for k in ("subtotal", "discount", "shipping", "tax", "total")}),
        "items": [i.as_api() for i in s["items"]],
        "coupon": s["coupon"].as_api() if s["coupon"] else None,
        "free_shipping": s["free_shipping"],
        "addresses": [a.as_api() for a in s["addresses"]],
    })


@bp.post("")
@login_required
def create_order():
    data = body()
    receipt = checkout_service.create_order(
        g.user.id,
        data.get("address_id"),
        data.get("payment_method"),
        data.get("notes"),
    )
    return ok(msg("order_placed"), _rupees(receipt), 201)


@bp.get("/<int:order_id>")
@login_required
def get_order(order_id: int):
    d = order_service.get_order_details(g.user.id, order_id)
    return ok("order", {**d["order"].as_api(), "timeline": d["timeline"], "can_cancel": d["can_cancel"]})


@bp.get("/<int:order_id>/track")
@login_required
def track_order(order_id: int):
    return ok("tracking", order_service.track_order(g.user.id, order_id))


@bp.get("/<int:order_id>/invoice")
@login_required
def invoice(order_id: int):
    inv = order_service.get_invoice(g.user.id, order_id)
    return ok("invoice", {
        **_rupees(inv),
        "items": [_rupees(i) for i in inv["items"]],
        "gst": {k: to_api(v) for k, v in inv["gst"].items()},
    })


@bp.post("/<int:order_id>/cancel")
@login_required
def cancel(order_id: int):
    order = order_service.cancel_order(g.user.id, order_id, body().get("reason"))
    return ok(msg("order_cancelled"), order.as_api())


# ---- admin -----------------------------------------------------------------

@admin_bp.get("")
@role_required("admin")
def admin_list():
    page = order_service.list_all_orders(
        page=request.args.get("page", 1, type=int),
        limit=request.args.get("limit", 20, type=int),
        status=request.args.get("status"),
        search=request.args.get("search"),
    )
    return ok("orders", _page_api(page))


@admin_bp.get("/stats")
@role_required("admin")
def admin_stats():
    stats = order_service.get_order_stats(request.args.get("days", 30, type=int))
    return ok("order stats", {
        **stats,
        "revenue": to_api(stats["revenue"]),
        "average_order_value": to_api(stats["average_order_value"]),
    })


@admin_bp.patch("/<int:order_id>/status")
@role_required("admin")
def admin_update_status(order_id: int):
    data = body()
    order = order_service.update_order_status(order_id, data.get("status"), extras=data, actor_id=g.user.id)
    return ok("order updated", order.as_api())


@admin_bp.post("/<int:order_id>/refund")
@role_required("admin")
def admin_refund(order_id: int):
    data = body()
    order = payment_service.refund_order(order_id, data.get("amount"), data.get("reason"), actor_id=g.user.id)
    return ok("order refunded", order.as_api())
