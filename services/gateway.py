"""
Payment gateway collaborators.

Every gateway exposes one call, ``create_payment_link``, returning the
checkout URL the customer is redirected to. The instance is built once by
``build_gateway`` in the app factory and reached through
``current_app.extensions["payment_gateway"]``.
"""
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass

import requests
import stripe

from services.errors import ExternalServiceError

logger = logging.getLogger(__name__)

PAYOS_SUCCESS_CODE = "00"
PAYOS_FAILURE_CODE = "01"


@dataclass(frozen=True)
class PaymentLink:
    checkout_url: str
    reference: str = None


class PaymentGateway:
    name = "base"

    def create_payment_link(self, order_code: int, amount: int, description: str,
                            cancel_url: str, return_url: str) -> PaymentLink:
        raise NotImplementedError


def _hmac_sha256(key: str, message: str) -> str:
    return hmac.new(key.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


class PayOSGateway(PaymentGateway):
    name = "payos"

    def __init__(self, client_id: str, api_key: str, checksum_key: str,
                 api_url: str = "https://api-merchant.payos.vn", timeout: float = 10,
                 session: requests.Session = None):
        self.client_id = client_id
        self.api_key = api_key
        self.checksum_key = checksum_key
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.http = session or requests.Session()

    def request_signature(self, order_code: int, amount: int, description: str,
                          cancel_url: str, return_url: str) -> str:
        # field order is fixed by the gateway: alphabetical
        message = (
            f"amount={amount}&cancelUrl={cancel_url}&description={description}"
            f"&orderCode={order_code}&returnUrl={return_url}"
        )
        return _hmac_sha256(self.checksum_key, message)

    def create_payment_link(self, order_code, amount, description, cancel_url, return_url):
        body = {
            "orderCode": order_code,
            "amount": amount,
            "description": description,
            "cancelUrl": cancel_url,
            "returnUrl": return_url,
            "signature": self.request_signature(order_code, amount, description, cancel_url, return_url),
        }
        headers = {"x-client-id": self.client_id or "", "x-api-key": self.api_key or ""}

        try:
            resp = self.http.post(
                f"{self.api_url}/v2/payment-requests",
                json=body,
                headers=headers,
                timeout=self.timeout,
            )
            resp.raise_for_status()
            payload = resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("PayOS payment link request failed for order %s: %s", order_code, exc)
            raise ExternalServiceError("Payment gateway unavailable") from exc

        if payload.get("code") != PAYOS_SUCCESS_CODE or not (payload.get("data") or {}).get("checkoutUrl"):
            logger.error("PayOS rejected order %s: %s", order_code, payload.get("desc"))
            raise ExternalServiceError("Payment gateway rejected the request")

        data = payload["data"]
        return PaymentLink(checkout_url=data["checkoutUrl"], reference=data.get("paymentLinkId"))

    def verify_webhook_data(self, data: dict, signature: str) -> bool:
        if not signature or not isinstance(data, dict):
            return False
        parts = []
        for key in sorted(data):
            value = data[key]
            if value is None:
                value = ""
            elif isinstance(value, (list, dict)):
                value = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
            parts.append(f"{key}={value}")
        expected = _hmac_sha256(self.checksum_key or "", "&".join(parts))
        return hmac.compare_digest(expected, signature)


class StripeGateway(PaymentGateway):
    name = "stripe"

    def __init__(self, secret_key: str, currency: str = "vnd", timeout: float = 10):
        self.currency = currency
        self.client = stripe.StripeClient(
            secret_key,
            http_client=stripe.RequestsClient(timeout=timeout),
            max_network_retries=0,
        )

    def create_payment_link(self, order_code, amount, description, cancel_url, return_url):
        try:
            session = self.client.checkout.sessions.create(params={
                "mode": "payment",
                "line_items": [{
                    "price_data": {
                        "currency": self.currency,
                        "product_data": {"name": description},
                        "unit_amount": amount,
                    },
                    "quantity": 1,
                }],
                "success_url": return_url,
                "cancel_url": cancel_url,
                "client_reference_id": str(order_code),
                "metadata": {"order_code": str(order_code)},
            })
        except stripe.StripeError as exc:
            logger.error("Stripe checkout session failed for order %s: %s", order_code, exc)
            raise ExternalServiceError("Payment gateway unavailable") from exc

        return PaymentLink(checkout_url=session.url, reference=session.id)


def build_gateway(config) -> PaymentGateway:
    provider = (config.get("PAYMENT_GATEWAY") or "payos").lower()
    timeout = config.get("GATEWAY_TIMEOUT_SECONDS", 10)

    if provider == "payos":
        return PayOSGateway(
            client_id=config.get("PAYOS_CLIENT_ID"),
            api_key=config.get("PAYOS_API_KEY"),
            checksum_key=config.get("PAYOS_CHECKSUM_KEY") or "",
            api_url=config.get("PAYOS_API_URL") or "https://api-merchant.payos.vn",
            timeout=timeout,
        )
    if provider == "stripe":
        return StripeGateway(
            secret_key=config.get("STRIPE_SECRET_KEY") or "",
            currency=config.get("STRIPE_CURRENCY", "vnd"),
            timeout=timeout,
        )
    raise ValueError(f"Unknown PAYMENT_GATEWAY: {provider}")
