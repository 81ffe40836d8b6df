# storefront/inventory/routes.py
from flask import g

from ..services import inventory_service
from ..utils.api import body, ok
from ..utils.decorators import role_required
from . import bp


@bp.post("/<int:product_id>/receive")
@role_required("admin")
def receive(product_id: int):
    data = body()
    entry = inventory_service.receive_stock(
        product_id, data.get("quantity"),
        actor_id=g.user.id, reference_id=data.get("reference_id"), notes=data.get("notes"),
    )
    return ok("stock received", entry.as_api(), 201)


@bp.post("/<int:product_id>/adjust")
@role_required("admin")
def adjust(product_id: int):
    data = body()
    entry = inventory_service.adjust_stock(product_id, data.get("delta"), actor_id=g.user.id, notes=data.get("notes"))
    return ok("stock adjusted", entry.as_api(), 201)


@bp.get("/<int:product_id>/ledger")
@role_required("admin")
def ledger(product_id: int):
    entries = inventory_service.ledger_for(product_id)
    return ok("ledger", {
        "items": [e.as_api() for e in entries],
        "replayed_stock": inventory_service.replay_stock(product_id),
    })


@bp.get("/audit")
@role_required("admin")
def audit():
    report = inventory_service.audit_inventory()
    return ok("inventory audit", {"items": report, "ok": all(r["ok"] for r in report)})
