import logging

from flask import current_app

from services.gateway import PaymentGateway, PaymentLink

logger = logging.getLogger(__name__)


def client_url(path: str = "") -> str:
    base = (current_app.config.get("CLIENT_URL") or "http://localhost:5173").rstrip("/")
    return f"{base}{path}"


def get_gateway() -> PaymentGateway:
    return current_app.extensions["payment_gateway"]


def request_payment_link(gateway: PaymentGateway, order_code: int, amount: int,
                         description: str, path: str = "") -> PaymentLink:
    """Ask the gateway for a checkout link; ExternalServiceError propagates."""
    url = client_url(path)
    link = gateway.create_payment_link(
        order_code=order_code,
        amount=amount,
        description=description,
        cancel_url=url,
        return_url=url,
    )
    logger.info("Payment link created for order %s via %s", order_code, gateway.name)
    return link
