"""
Gateway webhook reconciliation.

``handle_callback`` is the only entry point the gateway reaches. It consumes
the pending transaction first (replay defence), then settles it according to
its kind. Once the order code is consumed the callback cannot be replayed, so
business failures after that point are logged and reported as handled.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from models import db
from models.booking import Booking
from models.db import utcnow
from models.enums import BookingStatus, NotificationType, TransactionKind
from models.payment import Payment
from models.service import Service
from services import bookings, notifications, pending_transactions, purchases, subscriptions
from services import payments as ledger
from services.errors import AppError, InvalidState, NotFound, ValidationError
from services.gateway import PAYOS_SUCCESS_CODE
from utils.audit import log_event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallbackResult:
    processed: bool
    order_code: int
    kind: str = None
    outcome: str = "duplicate"


def parse_callback(body) -> tuple:
    """Extract (code, order_code, amount) from ``{code, data: {orderCode, amount}}``."""
    if not isinstance(body, dict):
        raise ValidationError("Malformed callback payload")
    code = body.get("code")
    data = body.get("data")
    if code is None or not isinstance(data, dict):
        raise ValidationError("Malformed callback payload")

    order_code = data.get("orderCode")
    amount = data.get("amount")
    if order_code is None or amount is None:
        raise ValidationError("orderCode and amount are required")
    return str(code), _whole_number(order_code, "orderCode"), _whole_number(amount, "amount")


def _whole_number(value, field: str) -> int:
    # ints or digit strings only; floats and bools are rejected
    if isinstance(value, int) and not isinstance(value, bool):
        number = value
    elif isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
    else:
        raise ValidationError(f"{field} must be an integer")
    if number < 0:
        raise ValidationError(f"{field} must not be negative")
    return number


def _format_day(day) -> str:
    return day.strftime(current_app.config.get("DATE_DISPLAY_FORMAT", "%d/%m/%Y"))


def _booking_requested_message(booking: Booking) -> str:
    service = db.session.get(Service, booking.service_id)
    title = service.title if service else "your service"
    return (
        f"A customer booked {title} on {_format_day(booking.scheduled_date)} "
        f"({booking.time_of_day})."
    )


def _settle_booking_payment(txn, success: bool, amount: int) -> str:
    payload = txn.payload
    payment = db.session.get(Payment, payload.payment_id)
    if payment is None:
        raise NotFound("Payment not found")
    if payment.booking_id != payload.booking_id:
        raise InvalidState("Payment does not belong to booking")

    if success:
        booking = bookings.transition(payload.booking_id, BookingStatus.PAYING, BookingStatus.REQUESTED)
        ledger.mark_paid(payload.payment_id)
    else:
        booking = bookings.transition(payload.booking_id, BookingStatus.PAYING, BookingStatus.PAY_CANCELLED)
        ledger.mark_failed(payload.payment_id)

    # booking and payment move in the same commit
    db.session.commit()

    if amount != booking.amount:
        logger.warning(
            "Order %s settled with amount %s, booking %s expects %s",
            txn.order_code, amount, booking.id, booking.amount,
        )

    if not success:
        log_event("PAYMENT_FAILED", entity="payment", entity_id=payload.payment_id,
                  metadata={"booking_id": booking.id, "order_code": txn.order_code})
        return "cancelled"

    log_event("PAYMENT_PAID", entity="payment", entity_id=payload.payment_id,
              metadata={"booking_id": booking.id, "order_code": txn.order_code})
    notifications.emit(booking.cameraman_id, NotificationType.BOOKING_REQUESTED,
                       _booking_requested_message(booking))
    return "requested"


def _settle_membership(txn, success: bool, amount: int) -> str:
    if not success:
        return "ignored"

    tier = txn.payload.tier
    user = subscriptions.activate(txn.user_id, tier)
    db.session.commit()

    log_event("SUBSCRIPTION_ACTIVATED", user_id=user.id, entity="user", entity_id=user.id,
              metadata={"tier": tier.value, "order_code": txn.order_code})
    notifications.emit(user.id, NotificationType.SUBSCRIPTION_ACTIVATED,
                       subscriptions.activation_message(user, tier))
    return "activated"


def _settle_buy_service(txn, success: bool, amount: int) -> str:
    if not success:
        return "ignored"

    purchase = purchases.record_purchase(txn.user_id, txn.payload.service_id, amount, txn.order_code)
    db.session.commit()

    log_event("SERVICE_PURCHASED", user_id=txn.user_id, entity="purchase", entity_id=purchase.id,
              metadata={"order_code": txn.order_code})
    return "purchased"


def _settle_legacy_schedule(txn, success: bool, amount: int) -> str:
    if not success:
        return "ignored"

    schedule = purchases.materialize_schedule(txn.payload)
    purchases.record_purchase(txn.user_id, txn.payload.service_id, amount, txn.order_code)
    db.session.commit()

    log_event("SCHEDULE_CREATE", user_id=txn.user_id, entity="schedule", entity_id=schedule.id,
              metadata={"order_code": txn.order_code})
    return "scheduled"


_HANDLERS = {
    TransactionKind.BOOKING_PAYMENT: _settle_booking_payment,
    TransactionKind.MEMBERSHIP_SUBSCRIPTION: _settle_membership,
    TransactionKind.BUY_SERVICE: _settle_buy_service,
    TransactionKind.LEGACY_SCHEDULE: _settle_legacy_schedule,
}
if set(_HANDLERS) != set(TransactionKind):
    raise RuntimeError("Every transaction kind needs a settlement handler")


def handle_callback(result_code, order_code: int, amount: int) -> CallbackResult:
    try:
        txn = pending_transactions.consume(order_code)
    except NotFound:
        logger.info("Callback for unknown or already consumed order %s ignored", order_code)
        return CallbackResult(processed=False, order_code=order_code)

    success = str(result_code) == PAYOS_SUCCESS_CODE
    handler = _HANDLERS[txn.kind]
    try:
        outcome = handler(txn, success, amount)
    except AppError as exc:
        db.session.rollback()
        logger.warning("Order %s (%s) not settled: %s", order_code, txn.kind.value, exc.message)
        outcome = "skipped"
    except Exception:
        # the order code is gone; the gateway must not retry
        db.session.rollback()
        logger.exception("Order %s (%s) failed during settlement", order_code, txn.kind.value)
        outcome = "error"

    return CallbackResult(processed=True, order_code=order_code, kind=txn.kind.value, outcome=outcome)


def expire_stale_bookings(ttl_minutes: int, now=None) -> list:
    """
    Cancel bookings left in PAYING longer than the TTL.

    Each booking's pending transaction is consumed first, with the same
    conditional delete the webhook uses; a booking whose transaction was
    already taken by a callback is left alone.
    """
    cutoff = (now or utcnow()) - timedelta(minutes=ttl_minutes)
    stale_ids = [
        row.id for row in
        db.session.query(Booking.id)
        .filter(Booking.status == BookingStatus.PAYING.value, Booking.created_at < cutoff)
        .order_by(Booking.id)
        .all()
    ]

    expired = []
    for booking_id in stale_ids:
        txn = pending_transactions.consume_for_booking(booking_id)
        if txn is None:
            continue
        try:
            bookings.transition(booking_id, BookingStatus.PAYING, BookingStatus.PAY_CANCELLED)
            ledger.mark_failed(txn.payload.payment_id)
            db.session.commit()
        except AppError as exc:
            db.session.rollback()
            logger.warning("Stale booking %s not cancelled: %s", booking_id, exc.message)
            continue

        log_event("BOOKING_EXPIRED", entity="booking", entity_id=booking_id,
                  metadata={"order_code": txn.order_code})
        expired.append(booking_id)

    if expired:
        logger.info("Expired %s stale bookings", len(expired))
    return expired
