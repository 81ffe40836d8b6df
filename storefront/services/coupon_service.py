# storefront/services/coupon_service.py
from datetime import datetime, timezone
import structlog
from sqlalchemy import func, or_, update
from ..extensions import db
from ..errors import (
    CouponExhaustedError,
    CouponInvalidError,
    CouponMinimumNotMetError,
    NotFoundError,
    ValidationError,
)
from ..model import Coupon, CouponType
from ..model.types import parse_enum
from ..utils.db import atomic, utcnow
from ..utils.money import from_minor, percent_of, to_minor
from . import pricing

logger = structlog.get_logger(__name__)


# ---- evaluation -------------------------------------------------------------

def evaluate(coupon: Coupon, subtotal: int) -> int:
    """Raw discount the coupon is worth on ``subtotal`` (paise).

    PERCENTAGE is clamped to ``max_discount``; FLAT is the face value even when
    it exceeds the subtotal; FREE_SHIPPING is worth the standard shipping charge.
    """
    if coupon.ctype == CouponType.PERCENTAGE:
        discount = percent_of(subtotal, coupon.value or 0)
        if coupon.max_discount:
            discount = min(discount, int(coupon.max_discount))
        return discount
    if coupon.ctype == CouponType.FLAT:
        return int(coupon.value or 0)
    if coupon.ctype == CouponType.FREE_SHIPPING:
        return pricing.standard_shipping()
    return 0


def discount_for(coupon: Coupon | None, subtotal: int, shipping: int) -> int:
    """Discount actually granted: goods coupons never exceed the subtotal and a
    free-shipping coupon only offsets the shipping that is really charged."""
    if coupon is None:
        return 0
    raw = evaluate(coupon, subtotal)
    if coupon.ctype == CouponType.FREE_SHIPPING:
        return min(raw, shipping)
    return max(0, min(raw, subtotal))


def redeemability_error(coupon: Coupon, subtotal: int, now: datetime | None = None):
    """The domain error explaining why ``coupon`` can't be used, or ``None``."""
    now = now or utcnow()
    if not coupon.is_active:
        return CouponInvalidError(details={"code": coupon.code})
    if coupon.valid_from and now < coupon.valid_from:
        return CouponInvalidError(details={"code": coupon.code})
    if coupon.valid_until and now > coupon.valid_until:
        return CouponInvalidError(details={"code": coupon.code})
    if coupon.max_uses and coupon.used_count >= coupon.max_uses:
        return CouponExhaustedError(details={"code": coupon.code})
    if subtotal < (coupon.min_order_value or 0):
        return CouponMinimumNotMetError(
            details={"code": coupon.code},
            minimum=from_minor(coupon.min_order_value),
        )
    return None


def is_redeemable(coupon: Coupon, subtotal: int, now: datetime | None = None) -> bool:
    return redeemability_error(coupon, subtotal, now) is None


def ensure_redeemable(coupon: Coupon, subtotal: int, now: datetime | None = None) -> None:
    error = redeemability_error(coupon, subtotal, now)
    if error is not None:
        raise error


def redeem(coupon: Coupon) -> None:
    """Count one use, atomically against the ``max_uses`` cap."""
    result = db.session.execute(
        update(Coupon)
        .where(
            Coupon.id == coupon.id,
            or_(Coupon.max_uses == 0, Coupon.used_count < Coupon.max_uses),
        )
        .values(used_count=Coupon.used_count + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise CouponExhaustedError(details={"code": coupon.code})
    db.session.expire(coupon, ["used_count"])


def find_by_code(code: str) -> Coupon:
    code = (code or "").strip()
    coupon = Coupon.query.filter(func.lower(Coupon.code) == code.lower()).first() if code else None
    if not coupon:
        raise NotFoundError("coupon_not_found")
    return coupon


# ---- admin ------------------------------------------------------------------

def _parse_iso8601(s):
    if not s: return None
    s = s.strip()
    if s.endswith("Z"): s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
        if dt.tzinfo:
            return dt.astimezone(timezone.utc).replace(tzinfo=None)
        return dt
    except ValueError:
        return None

def _money_field(data, key, default=None):
    raw = data.get(key)
    if raw is None or raw == "":
        return default
    try:
        return to_minor(raw)
    except (ArithmeticError, ValueError):
        raise ValidationError(details={"field": key})

def create_coupon_from_payload(data: dict) -> Coupon:
    """Money fields arrive in rupees; ``value`` is percent points for PERCENTAGE."""
    code = (data.get("code") or "").strip().upper()
    ctype = parse_enum(CouponType, data.get("type") or "PERCENTAGE")
    if not code:
        raise ValidationError(details={"field": "code"})
    if ctype is None:
        raise ValidationError(details={"field": "type"})

    if ctype == CouponType.PERCENTAGE:
        try:
            value = int(data.get("value") or 0)
        except (TypeError, ValueError):
            raise ValidationError(details={"field": "value"})
        if not 0 < value <= 100:
            raise ValidationError(details={"field": "value"})
    elif ctype == CouponType.FLAT:
        value = _money_field(data, "value", 0)
        if value <= 0:
            raise ValidationError(details={"field": "value"})
    else:
        value = 0

    valid_from = _parse_iso8601(data.get("valid_from"))
    valid_until = _parse_iso8601(data.get("valid_until"))
    if data.get("valid_from") and not valid_from:
        raise ValidationError(details={"field": "valid_from"})
    if data.get("valid_until") and not valid_until:
        raise ValidationError(details={"field": "valid_until"})

    try:
        max_uses = int(data.get("max_uses") or 0)
    except (TypeError, ValueError):
        raise ValidationError(details={"field": "max_uses"})
    if max_uses < 0:
        raise ValidationError(details={"field": "max_uses"})

    with atomic():
        existing = Coupon.query.filter(func.lower(Coupon.code) == code.lower()).first()
        if existing:
            raise ValidationError(details={"field": "code", "reason": "duplicate"})
        c = Coupon(
            code=code, ctype=ctype, value=value,
            description=data.get("description"),
            max_discount=_money_field(data, "max_discount"),
            min_order_value=_money_field(data, "min_order_value", 0),
            is_active=bool(data.get("is_active", True)),
            valid_from=valid_from, valid_until=valid_until,
            max_uses=max_uses,
        )
        db.session.add(c)

    logger.info("Coupon created", code=c.code, type=c.ctype.value)
    return c

def list_coupons(active: bool | None = None) -> list[Coupon]:
    q = Coupon.query
    if active is not None:
        q = q.filter(Coupon.is_active == active)
    return q.order_by(Coupon.id.desc()).all()
