# storefront/errors.py
"""Error taxonomy for the checkout and fulfillment core.

Every error has a ``kind`` (what callers branch on), a message ``code`` (what the
API layer localizes) and an HTTP status used by the blueprint error handler.
"""

from .messages import translate


class StorefrontError(Exception):
    kind = "internal"
    status_code = 500
    code = "server_error"

    def __init__(self, code: str | None = None, details: dict | None = None, **params):
        self.code = code or self.code
        self.details = details or {}
        self.params = params
        super().__init__(self.message())

    def message(self, lang: str = "en") -> str:
        return translate(self.code, lang, **self.params)

    def as_api(self) -> dict:
        return {"kind": self.kind, "code": self.code, **self.details}


class ValidationError(StorefrontError):
    kind = "validation"
    status_code = 422
    code = "invalid_input"


class NotFoundError(StorefrontError):
    kind = "not_found"
    status_code = 404
    code = "order_not_found"


class ConflictError(StorefrontError):
    kind = "conflict"
    status_code = 409
    code = "invalid_input"


class AuthorizationError(StorefrontError):
    kind = "authorization"
    status_code = 403
    code = "forbidden"


class ExternalGatewayError(StorefrontError):
    kind = "external_gateway"
    status_code = 502
    code = "gateway_error"


class InternalError(StorefrontError):
    pass


# ---- concrete errors -------------------------------------------------------

class EmptyCartError(ValidationError):
    code = "cart_empty"


class UnsupportedPaymentMethodError(ValidationError):
    code = "invalid_payment_method"


class AddressNotFoundError(NotFoundError):
    code = "address_not_found"


class InsufficientStockError(ConflictError):
    code = "out_of_stock"

    def __init__(self, product, available: int | None = None):
        self.product = product
        available = product.stock if available is None else available
        super().__init__(
            details={"product_id": product.id, "available": available},
            product=product.name,
            available=available,
        )


class CouponInvalidError(ConflictError):
    code = "coupon_invalid"


class CouponMinimumNotMetError(ConflictError):
    code = "coupon_minimum"


class CouponExhaustedError(ConflictError):
    code = "coupon_exhausted"


class InvalidTransitionError(ConflictError):
    code = "invalid_transition"

    def __init__(self, current, target, code: str | None = None):
        self.current = current
        self.target = target
        current = getattr(current, "value", current)
        target = getattr(target, "value", target)
        super().__init__(
            code=code,
            details={"current": current, "target": target},
            current=current,
            target=target,
        )


class PaymentVerificationError(ValidationError):
    code = "payment_verification_failed"


class PaymentNotCapturedError(ConflictError):
    code = "payment_not_captured"
