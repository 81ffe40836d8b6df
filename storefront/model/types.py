# storefront/model/types.py
import enum


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REFUNDED})


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"
    # cash collected at the door
    PAID = "PAID"


class PaymentMethod(str, enum.Enum):
    COD = "COD"
    ONLINE = "ONLINE"
    UPI = "UPI"

    @property
    def is_online(self) -> bool:
        return self in PaymentMethod.online()

    @classmethod
    def online(cls) -> tuple:
        return (cls.ONLINE, cls.UPI)


class CouponType(str, enum.Enum):
    PERCENTAGE = "PERCENTAGE"
    FLAT = "FLAT"
    FREE_SHIPPING = "FREE_SHIPPING"


class InventoryChange(str, enum.Enum):
    SALE = "SALE"
    RETURN = "RETURN"
    PURCHASE = "PURCHASE"
    ADJUSTMENT = "ADJUSTMENT"


def parse_enum(enum_cls, value):
    """Return the member for ``value`` (case-insensitive) or ``None``."""
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        return None
    try:
        return enum_cls(value.strip().upper())
    except ValueError:
        return None
