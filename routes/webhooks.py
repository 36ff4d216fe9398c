import logging

import stripe
from flask import Blueprint, current_app, request, jsonify

from services.checkout import get_gateway
from services.errors import ValidationError
from services.gateway import PAYOS_FAILURE_CODE, PAYOS_SUCCESS_CODE
from services.reconciler import handle_callback, parse_callback

logger = logging.getLogger(__name__)

webhook_bp = Blueprint("webhook", __name__)

STRIPE_OUTCOMES = {
    "checkout.session.completed": PAYOS_SUCCESS_CODE,
    "checkout.session.expired": PAYOS_FAILURE_CODE,
}


@webhook_bp.post("/payments/webhook")
def payos_webhook():
    body = request.get_json(silent=True)
    code, order_code, amount = parse_callback(body)

    if current_app.config.get("PAYOS_VERIFY_WEBHOOK_SIGNATURE"):
        gateway = get_gateway()
        verify = getattr(gateway, "verify_webhook_data", None)
        if verify is None or not verify(body.get("data"), body.get("signature")):
            raise ValidationError("Invalid webhook signature")

    result = handle_callback(code, order_code, amount)
    return jsonify(success=True, processed=result.processed), 200


@webhook_bp.post("/webhooks/stripe")
def stripe_webhook():
    endpoint_secret = current_app.config.get("STRIPE_WEBHOOK_SECRET")
    if not endpoint_secret:
        return jsonify(error="Webhook secret not configured"), 500

    sig_header = request.headers.get("Stripe-Signature")
    if not sig_header:
        return jsonify(error="Invalid webhook signature"), 400

    try:
        stripe.WebhookSignature.verify_header(request.get_data(as_text=True), sig_header, endpoint_secret)
    except stripe.SignatureVerificationError:
        return jsonify(error="Invalid webhook signature"), 400

    event = request.get_json(silent=True) or {}

    code = STRIPE_OUTCOMES.get(event.get("type"))
    if code is None:
        return jsonify(received=True), 200

    session = (event.get("data") or {}).get("object") or {}
    metadata = session.get("metadata") or {}
    order_code = metadata.get("order_code") or session.get("client_reference_id")
    if not order_code:
        logger.warning("Stripe session %s has no order code", session.get("id"))
        return jsonify(received=True), 200

    try:
        order_code = int(order_code)
        amount = int(session.get("amount_total") or 0)
    except (TypeError, ValueError):
        logger.warning("Stripe session %s has a malformed order code %r", session.get("id"), order_code)
        return jsonify(received=True), 200

    result = handle_callback(code, order_code, amount)
    return jsonify(received=True, processed=result.processed), 200
