# storefront/gateway/fake_adapter.py
import itertools

from ..errors import ExternalGatewayError
from .port import GatewayPayment, PaymentGatewayClient, PaymentIntent, RefundResult, sign


class FakeGateway(PaymentGatewayClient):
    """In-memory gateway for tests and local runs.

    Signatures use the same HMAC as the real provider, so callbacks built with
    ``callback_for`` verify exactly like production ones.
    """

    name = "fake"

    def __init__(self, key_id="fake_key", key_secret="fake_secret"):
        super().__init__(key_id, key_secret)
        self._ids = itertools.count(1)
        self.intents = {}
        self.payments = {}
        self.refunds = []
        self.calls = []
        self.fail_on = set()

    def _maybe_fail(self, op):
        self.calls.append(op)
        if op in self.fail_on:
            raise ExternalGatewayError(details={"reason": "unreachable"})

    def create_payment_intent(self, amount, currency, receipt, notes=None):
        self._maybe_fail("create_payment_intent")
        intent = PaymentIntent(f"order_fake{next(self._ids)}", int(amount), currency, self.key_id)
        self.intents[intent.gateway_order_id] = intent
        return intent

    def capture(self, gateway_order_id, status="captured"):
        """Simulate the customer paying; returns the callback payload."""
        intent = self.intents[gateway_order_id]
        payment_id = f"pay_fake{next(self._ids)}"
        self.payments[payment_id] = GatewayPayment(
            id=payment_id, status=status, amount=intent.amount,
            order_id=gateway_order_id, method="upi",
            raw={"id": payment_id, "status": status, "amount": intent.amount, "order_id": gateway_order_id},
        )
        return self.callback_for(gateway_order_id, payment_id)

    def callback_for(self, gateway_order_id, payment_id):
        return {
            "razorpay_order_id": gateway_order_id,
            "razorpay_payment_id": payment_id,
            "razorpay_signature": sign(self.key_secret, gateway_order_id, payment_id),
        }

    def fetch_payment(self, payment_id):
        self._maybe_fail("fetch_payment")
        try:
            return self.payments[payment_id]
        except KeyError:
            raise ExternalGatewayError(details={"reason": "unknown_payment"})

    def refund(self, payment_id, amount):
        self._maybe_fail("refund")
        result = RefundResult(f"rfnd_fake{next(self._ids)}", int(amount), "processed")
        self.refunds.append((payment_id, result))
        return result
