# storefront/cart/routes.py
from flask import g

from ..services import cart_service
from ..utils.api import body, ok
from ..utils.decorators import login_required
from ..utils.money import to_api
from . import bp


def _summary_api(s: dict) -> dict:
    out = {
        "is_empty": s["is_empty"],
        "item_count": s["item_count"],
        "subtotal": to_api(s["subtotal"]),
        "discount": to_api(s["discount"]),
        "shipping": to_api(s["shipping"]),
        "total": to_api(s["total"]),
    }
    if not s["is_empty"]:
        out.update({
            "items": [i.as_api() for i in s["items"]],
            "coupon": s["coupon"].as_api() if s["coupon"] else None,
            "free_shipping": s["free_shipping"],
            "free_shipping_remaining": to_api(s["free_shipping_remaining"]),
        })
    return out


@bp.get("")
@login_required
def get_cart():
    cart = cart_service.get_or_create_cart(g.user.id)
    return ok("cart", cart.as_api())


@bp.get("/summary")
@login_required
def cart_summary():
    return ok("cart summary", _summary_api(cart_service.get_cart_summary(g.user.id)))


@bp.post("/items")
@login_required
def add_item():
    data = body()
    cart = cart_service.add_item(g.user.id, data.get("product_id"), data.get("quantity", 1))
    return ok("item added", cart.as_api(), 201)


@bp.patch("/items/<int:item_id>")
@login_required
def update_item(item_id: int):
    cart = cart_service.update_item(g.user.id, item_id, body().get("quantity"))
    return ok("item updated", cart.as_api())


@bp.delete("/items/<int:item_id>")
@login_required
def remove_item(item_id: int):
    cart = cart_service.remove_item(g.user.id, item_id)
    return ok("item removed", cart.as_api())


@bp.delete("/items")
@login_required
def clear_cart():
    cart = cart_service.clear_cart(g.user.id)
    return ok("cart cleared", cart.as_api())


@bp.post("/coupon")
@login_required
def apply_coupon():
    cart = cart_service.apply_coupon(g.user.id, body().get("code"))
    return ok("coupon applied", cart.as_api())


@bp.delete("/coupon")
@login_required
def remove_coupon():
    cart = cart_service.remove_coupon(g.user.id)
    return ok("coupon removed", cart.as_api())
