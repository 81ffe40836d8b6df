# storefront/utils/money.py
"""Money helpers.

Amounts are stored and computed as integer paise. Rupee ``Decimal`` values only
appear at the edges (API payloads, invoices).
"""

from decimal import Decimal, ROUND_HALF_UP

Money = Decimal

def D(x) -> Money:
    return x if isinstance(x, Decimal) else Decimal(str(x or "0"))

def round_money(x: Money) -> Money:
    return D(x).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

def to_minor(x) -> int:
    """Rupees (any numeric) to integer paise."""
    return int((D(x) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def from_minor(paise: int | None) -> Money:
    return round_money(D(paise or 0) / 100)

def percent_of(amount: int, percent) -> int:
    """``amount * percent / 100`` rounded half-up to whole paise."""
    return int((D(amount) * D(percent) / 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def to_api(paise: int | None) -> float:
    return float(from_minor(paise))
