# storefront/coupon/routes.py
from flask import request

from ..services import coupon_service
from ..utils.api import body, ok
from ..utils.decorators import role_required
from . import bp


@bp.post("")
@role_required("admin")
def create_coupon():
    c = coupon_service.create_coupon_from_payload(body())
    return ok("Coupon created", c.as_api(), 201)


@bp.get("")
@role_required("admin")
def list_coupons():
    active = request.args.get("active")
    if active is not None:
        active = active.lower() == "true"
    items = coupon_service.list_coupons(active)
    return ok("ok", {"items": [c.as_api() for c in items]})
