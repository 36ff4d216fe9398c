from datetime import date, datetime, time

from models import db
from models.booking import Booking
from models.db import utcnow
from models.enums import PaymentStatus, PaymentType, RoleName
from models.payment import Payment
from services.errors import Forbidden, InvalidState, NotFound, ValidationError


def open_booking_payment(booking: Booking) -> Payment:
    """Flush a PROCESSING payment for a freshly created booking (no commit)."""
    payment = Payment(
        booking_id=booking.id,
        type=PaymentType.BOOKING.value,
        amount=booking.amount,
        status=PaymentStatus.PROCESSING.value,
    )
    db.session.add(payment)
    db.session.flush()
    return payment


def _settle(payment_id: int, target: PaymentStatus) -> Payment:
    values = {"status": target.value, "updated_at": utcnow()}
    if target is PaymentStatus.PAID:
        values["paid_at"] = utcnow()

    # compare-and-set: only a PROCESSING payment moves
    updated = (
        Payment.query
        .filter_by(id=payment_id, status=PaymentStatus.PROCESSING.value)
        .update(values, synchronize_session="fetch")
    )
    if updated != 1:
        if db.session.get(Payment, payment_id) is None:
            raise NotFound("Payment not found")
        raise InvalidState("Payment is not processing")
    return db.session.get(Payment, payment_id)


def mark_paid(payment_id: int) -> Payment:
    """PROCESSING -> PAID. Does not commit; the caller owns the transaction."""
    return _settle(payment_id, PaymentStatus.PAID)


def mark_failed(payment_id: int) -> Payment:
    """PROCESSING -> FAILED. Does not commit; the caller owns the transaction."""
    return _settle(payment_id, PaymentStatus.FAILED)


def _can_view(actor, booking: Booking) -> bool:
    if actor.has_role(RoleName.ADMIN):
        return True
    return actor.id in (booking.customer_id, booking.cameraman_id)


def get_payment(actor, payment_id: int) -> Payment:
    payment = db.session.get(Payment, payment_id)
    if not payment:
        raise NotFound("Payment not found")

    if payment.booking_id is None:
        if not actor.has_role(RoleName.ADMIN):
            raise Forbidden("You are not allowed to view this payment")
        return payment

    booking = db.session.get(Booking, payment.booking_id)
    if not booking:
        raise NotFound("Booking for this payment not found")
    if not _can_view(actor, booking):
        raise Forbidden("You are not allowed to view this payment")
    return payment


def _parse_day(value, field: str):
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field}. Use YYYY-MM-DD")


def list_payments(actor, status=None, payment_type=None, start_date=None, end_date=None,
                  page: int = 1, page_size: int = 10, mine: bool = True):
    """
    Paginated payments, newest first.

    ``mine=True`` restricts to payments of bookings where the actor is the
    customer or the cameraman; ``mine=False`` is the admin-wide listing.
    Returns ``(rows, total)``.
    """
    q = Payment.query

    if mine:
        q = q.join(Booking, Booking.id == Payment.booking_id).filter(
            db.or_(Booking.customer_id == actor.id, Booking.cameraman_id == actor.id)
        )
    elif not actor.has_role(RoleName.ADMIN):
        raise Forbidden("Only admins can list all payments")

    if status:
        if status not in {s.value for s in PaymentStatus}:
            raise ValidationError("Invalid payment status")
        q = q.filter(Payment.status == status)
    if payment_type:
        if payment_type not in {t.value for t in PaymentType}:
            raise ValidationError("Invalid payment type")
        q = q.filter(Payment.type == payment_type)

    start = _parse_day(start_date, "start_date")
    end = _parse_day(end_date, "end_date")
    if start:
        q = q.filter(Payment.created_at >= datetime.combine(start, time.min))
    if end:
        q = q.filter(Payment.created_at <= datetime.combine(end, time.max))

    total = q.count()
    rows = (
        q.order_by(Payment.created_at.desc(), Payment.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return rows, total
