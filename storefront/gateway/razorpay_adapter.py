# storefront/gateway/razorpay_adapter.py
import httpx
import structlog

from ..errors import ExternalGatewayError
from .port import GatewayPayment, PaymentGatewayClient, PaymentIntent, RefundResult

logger = structlog.get_logger(__name__)


class RazorpayClient(PaymentGatewayClient):
    """Razorpay REST API. Amounts go over the wire in paise."""

    name = "razorpay"

    def __init__(self, key_id, key_secret, base_url="https://api.razorpay.com/v1", timeout=10.0):
        super().__init__(key_id, key_secret)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _request(self, method: str, path: str, json: dict | None = None) -> dict:
        if not self.enabled:
            raise ExternalGatewayError("online_payment_unavailable")
        try:
            with httpx.Client(timeout=self.timeout, auth=(self.key_id, self.key_secret)) as client:
                resp = client.request(method, f"{self.base_url}{path}", json=json)
        except httpx.RequestError as e:
            logger.error("Razorpay unreachable", path=path, error=str(e))
            raise ExternalGatewayError(details={"reason": "unreachable"})

        if resp.status_code >= 400:
            logger.error("Razorpay request failed", path=path, status=resp.status_code, body=resp.text[:500])
            raise ExternalGatewayError(details={"reason": "rejected", "status": resp.status_code})
        try:
            return resp.json()
        except ValueError:
            raise ExternalGatewayError(details={"reason": "bad_response"})

    def create_payment_intent(self, amount, currency, receipt, notes=None):
        body = self._request("POST", "/orders", {
            "amount": int(amount),
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
            "payment_capture": 1,
        })
        if "id" not in body:
            raise ExternalGatewayError(details={"reason": "bad_response"})
        logger.info("Razorpay order created", gateway_order_id=body["id"], receipt=receipt)
        return PaymentIntent(body["id"], int(body.get("amount", amount)), currency, self.key_id)

    def fetch_payment(self, payment_id):
        body = self._request("GET", f"/payments/{payment_id}")
        return GatewayPayment(
            id=body.get("id", payment_id),
            status=body.get("status", ""),
            amount=int(body.get("amount") or 0),
            order_id=body.get("order_id"),
            method=body.get("method"),
            raw=body,
        )

    def refund(self, payment_id, amount):
        body = self._request("POST", f"/payments/{payment_id}/refund",
                             {"amount": int(amount), "speed": "optimum"})
        logger.info("Razorpay refund initiated", refund_id=body.get("id"), payment_id=payment_id)
        return RefundResult(body.get("id", ""), int(body.get("amount", amount)), body.get("status", "processed"))
