# storefront/gateway/__init__.py
from flask import current_app

from .port import GatewayPayment, PaymentCallback, PaymentGatewayClient, PaymentIntent, RefundResult


def build_gateway(config) -> PaymentGatewayClient:
    kind = (config.get("PAYMENT_GATEWAY") or "razorpay").lower()
    if kind == "fake":
        from .fake_adapter import FakeGateway
        return FakeGateway(config.get("RAZORPAY_KEY_ID") or "fake_key",
                           config.get("RAZORPAY_KEY_SECRET") or "fake_secret")
    from .razorpay_adapter import RazorpayClient
    return RazorpayClient(
        config.get("RAZORPAY_KEY_ID"),
        config.get("RAZORPAY_KEY_SECRET"),
        base_url=config.get("RAZORPAY_BASE_URL", "https://api.razorpay.com/v1"),
        timeout=config.get("RAZORPAY_TIMEOUT", 10.0),
    )


def init_gateway(app, gateway: PaymentGatewayClient | None = None):
    app.extensions["payment_gateway"] = gateway or build_gateway(app.config)


def get_gateway() -> PaymentGatewayClient:
    return current_app.extensions["payment_gateway"]


__all__ = [
    "GatewayPayment",
    "PaymentCallback",
    "PaymentGatewayClient",
    "PaymentIntent",
    "RefundResult",
    "build_gateway",
    "get_gateway",
    "init_gateway",
]
