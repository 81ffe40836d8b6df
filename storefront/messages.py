# storefront/messages.py
"""User-facing strings keyed by error/success code.

Callers branch on the error class; these strings are only for display.
"""

DEFAULT_LANGUAGE = "en"

MESSAGES = {
    "cart_empty": {
        "en": "Your cart is empty",
        "gu": "કાર્ટ ખાલી છે",
    },
    "cart_item_not_found": {
        "en": "Cart item not found",
        "gu": "કાર્ટ આઇટમ મળ્યું નથી",
    },
    "product_not_found": {
        "en": "Product not found",
        "gu": "પ્રોડક્ટ મળ્યું નથી",
    },
    "out_of_stock": {
        "en": "{product} is not available in the requested quantity (only {available} left)",
        "gu": "{product} માત્ર {available} ઉપલબ્ધ છે",
    },
    "address_not_found": {
        "en": "Address not found",
        "gu": "સરનામું મળ્યું નથી",
    },
    "order_not_found": {
        "en": "Order not found",
        "gu": "ઓર્ડર મળ્યો નથી",
    },
    "coupon_not_found": {
        "en": "Invalid coupon code",
        "gu": "અમાન્ય કૂપન કોડ",
    },
    "coupon_invalid": {
        "en": "This coupon cannot be used right now",
        "gu": "અમાન્ય કૂપન કોડ",
    },
    "coupon_minimum": {
        "en": "Minimum order value for this coupon is ₹{minimum}",
        "gu": "ન્યૂનતમ ઓર્ડર ₹{minimum} હોવું જોઈએ",
    },
    "coupon_exhausted": {
        "en": "This coupon has reached its usage limit",
        "gu": "આ કૂપનનો ઉપયોગ મર્યાદા પૂર્ણ થઈ છે",
    },
    "invalid_quantity": {
        "en": "Quantity must be at least 1",
        "gu": "જથ્થો ધનાત્મક હોવો જોઈએ",
    },
    "invalid_payment_method": {
        "en": "Select a valid payment method",
        "gu": "માન્ય ચુકવણી પદ્ધતિ પસંદ કરો",
    },
    "online_payment_unavailable": {
        "en": "Online payment is not available right now. Choose COD.",
        "gu": "ઓનલાઇન ચુકવણી હમણારું ઉપલબ્ધ નથી. COD પસંદ કરો.",
    },
    "invalid_status": {
        "en": "Select a valid status",
        "gu": "માન્ય સ્થિતિ પસંદ કરો",
    },
    "invalid_transition": {
        "en": "Order cannot move from {current} to {target}",
        "gu": "ઓર્ડર {current} થી {target} માં બદલી શકાતો નથી",
    },
    "cancel_pending_only": {
        "en": "Only pending orders can be cancelled",
        "gu": "ફક્ત પેન્ડિંગ ઓર્ડર રદ કરી શકાય છે",
    },
    "payment_verification_failed": {
        "en": "Payment could not be verified",
        "gu": "ચુકવણી પુષ્ટિ થઈ શક્ય નથી",
    },
    "payment_not_captured": {
        "en": "Payment has not been completed",
        "gu": "ચુકવણી પૂર્ણ થઈ શક્ય નથી",
    },
    "online_payment_only": {
        "en": "Only online payments can be marked as failed",
        "gu": "ફક્ત ઓનલાઇન ચુકવણી નિષ્ફળ તરીકે નોંધી શકાય છે",
    },
    "payment_not_completed": {
        "en": "Order cannot move to {target} until payment is completed",
        "gu": "ચુકવણી પૂર્ણ થયા વિના ઓર્ડર {target} માં બદલી શકાતો નથી",
    },
    "inventory_released": {
        "en": "Stock for this order was released; it can only be cancelled",
        "gu": "આ ઓર્ડરનો સ્ટોક પરત થઈ ગયો છે; તેને ફક્ત રદ કરી શકાય છે",
    },
    "payment_already_resolved": {
        "en": "Payment for this order has already been settled",
        "gu": "આ ઓર્ડરની ચુકવણી પહેલેથી નક્કી થઈ ગઈ છે",
    },
    "refund_not_allowed": {
        "en": "Only completed online payments can be refunded",
        "gu": "ફક્ત ઓનલાઇન ચુકવણી વાળા રિફંડ માટે શકાય છે",
    },
    "gateway_error": {
        "en": "Payment provider is unavailable. Please try again.",
        "gu": "પેમેન્ટ સેવા ઉપલબ્ધ નથી. કૃપા કરીને ફરી પ્રયત્ન કરો.",
    },
    "forbidden": {
        "en": "You are not allowed to access this resource",
        "gu": "તમને ઍક્સેસ કરવાની મંજૂરી નથી",
    },
    "invalid_input": {
        "en": "Invalid input",
        "gu": "અમાન્ય ઇનપુટ",
    },
    "stock_adjustment_negative": {
        "en": "Stock cannot go below zero",
        "gu": "સ્ટોક શૂન્યથી ઓછો ન થઈ શકે",
    },
    "server_error": {
        "en": "Something went wrong. Please try again.",
        "gu": "કંઈક ખોટું થયું. કૃપા કરીને ફરી પ્રયત્ન કરો.",
    },
    "order_placed": {
        "en": "Order placed successfully!",
        "gu": "ઓર્ડર સફળતાપૂર્વક મૂકવામાં આવ્યો!",
    },
    "order_cancelled": {
        "en": "Order cancelled",
        "gu": "ઓર્ડર રદ કરવામાં આવ્યો",
    },
    "payment_completed": {
        "en": "Payment completed",
        "gu": "ચુકવણી પૂર્ણ થઈ ગઈ",
    },
    "payment_failed": {
        "en": "Payment failed. Please try again.",
        "gu": "ચુકવણી નિષ્ફળ થઈ. કૃપા કરીને ફરી પ્રયત્ન કરો.",
    },
}


def pick_language(accept_language: str | None) -> str:
    for part in (accept_language or "").split(","):
        lang = part.split(";")[0].strip().lower()[:2]
        if lang in ("en", "gu"):
            return lang
    return DEFAULT_LANGUAGE


def translate(code: str, lang: str = DEFAULT_LANGUAGE, **params) -> str:
    entry = MESSAGES.get(code) or MESSAGES["server_error"]
    template = entry.get(lang) or entry[DEFAULT_LANGUAGE]
    try:
        return template.format(**params)
    except (KeyError, IndexError):
        return template
