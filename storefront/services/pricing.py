# storefront/services/pricing.py
"""Shipping, tax and GST rules for the single domestic tax jurisdiction."""

from flask import current_app

from ..utils.money import percent_of


def standard_shipping() -> int:
    return int(current_app.config["STANDARD_SHIPPING"])


def free_shipping_threshold() -> int:
    return int(current_app.config["FREE_SHIPPING_THRESHOLD"])


def shipping_for(subtotal: int) -> int:
    return 0 if subtotal >= free_shipping_threshold() else standard_shipping()


def free_shipping_remaining(subtotal: int) -> int:
    return max(0, free_shipping_threshold() - subtotal)


def tax_for(subtotal: int) -> int:
    return percent_of(subtotal, current_app.config["TAX_RATE_PERCENT"])


def is_intra_region(state: str | None) -> bool:
    seller_state = (current_app.config.get("SELLER_STATE") or "").strip().lower()
    return bool(state) and state.strip().lower() == seller_state


def gst_split(tax: int, state: str | None) -> dict:
    """Intra-region sales split tax into CGST + SGST, inter-region is all IGST."""
    if is_intra_region(state):
        cgst = tax // 2
        return {"cgst": cgst, "sgst": tax - cgst, "igst": 0}
    return {"cgst": 0, "sgst": 0, "igst": tax}


def order_totals(subtotal: int, discount: int) -> dict:
    shipping = shipping_for(subtotal)
    tax = tax_for(subtotal)
    return {
        "subtotal": subtotal,
        "discount": discount,
        "shipping": shipping,
        "tax": tax,
        "total": subtotal - discount + shipping + tax,
    }
