# storefront/gateway/port.py
"""What the checkout core needs from a payment provider."""
import hashlib
import hmac
from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass
class PaymentIntent:
    gateway_order_id: str
    amount: int          # paise
    currency: str
    key_id: str | None = None

    def as_api(self):
        return {
            "gateway_order_id": self.gateway_order_id,
            "amount_in_paise": self.amount,
            "currency": self.currency,
            "key_id": self.key_id,
        }


@dataclass
class GatewayPayment:
    id: str
    status: str
    amount: int
    order_id: str | None = None
    method: str | None = None
    raw: dict = field(default_factory=dict)

    @property
    def captured(self) -> bool:
        return self.status == "captured"


@dataclass
class RefundResult:
    id: str
    amount: int
    status: str


@dataclass
class PaymentCallback:
    gateway_order_id: str
    payment_id: str
    signature: str

    @classmethod
    def from_payload(cls, payload: dict | None) -> "PaymentCallback | None":
        payload = payload or {}
        order_id = payload.get("razorpay_order_id") or payload.get("gateway_order_id")
        payment_id = payload.get("razorpay_payment_id") or payload.get("payment_id")
        signature = payload.get("razorpay_signature") or payload.get("signature")
        if not (order_id and payment_id and signature):
            return None
        return cls(str(order_id), str(payment_id), str(signature))


def sign(secret: str, gateway_order_id: str, payment_id: str) -> str:
    msg = f"{gateway_order_id}|{payment_id}".encode()
    return hmac.new(secret.encode(), msg, hashlib.sha256).hexdigest()


class PaymentGatewayClient(ABC):
    name = "gateway"

    def __init__(self, key_id: str, key_secret: str):
        self.key_id = key_id or ""
        self.key_secret = key_secret or ""

    @property
    def enabled(self) -> bool:
        return bool(self.key_id and self.key_secret)

    def verify_signature(self, callback: PaymentCallback) -> bool:
        if not self.enabled:
            return False
        expected = sign(self.key_secret, callback.gateway_order_id, callback.payment_id)
        return hmac.compare_digest(expected, callback.signature)

    @abstractmethod
    def create_payment_intent(self, amount: int, currency: str, receipt: str,
                              notes: dict | None = None) -> PaymentIntent: ...

    @abstractmethod
    def fetch_payment(self, payment_id: str) -> GatewayPayment: ...

    @abstractmethod
    def refund(self, payment_id: str, amount: int) -> RefundResult: ...
