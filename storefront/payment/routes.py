# storefront/payment/routes.py
from flask import g

from ..services import payment_service
from ..utils.api import body, msg, ok
from ..utils.decorators import login_required
from . import bp


@bp.get("/methods")
def methods():
    return ok("payment methods", {"methods": payment_service.available_payment_methods()})


@bp.post("/verify")
@login_required
def verify():
    result = payment_service.verify_payment(body())
    order = result["order"]
    return ok(msg("payment_completed"), {
        "order_id": order.id,
        "order_number": order.order_number,
        "payment_status": order.payment_status.value,
        "already_confirmed": result["already_confirmed"],
    })


@bp.post("/failed")
@login_required
def failed():
    changed = payment_service.handle_payment_failure_callback(body(), user_id=g.user.id)
    return ok(msg("payment_failed"), {"updated": changed})


@bp.get("/status/<int:order_id>")
@login_required
def status(order_id: int):
    return ok("payment status", payment_service.get_payment_status(g.user.id, order_id))
