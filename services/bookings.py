"""
Booking lifecycle.

    PAYING  --(gateway success)-->             REQUESTED --(cameraman)--> COMPLETED
    PAYING  --(gateway failure / stale sweep)--> PAY_CANCELLED

Slot exclusivity is enforced by the ``uq_booking_active_slot`` partial unique
index; the read before the insert only gives a friendlier error on the
common path.
"""
import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy.exc import IntegrityError

from models import db
from models.booking import Booking
from models.db import utcnow
from models.enums import ACTIVE_BOOKING_STATUSES, BookingStatus, RoleName, TimeOfDay, TransactionKind
from models.payment import Payment
from models.user import User
from services import payments as ledger
from services import pending_transactions
from services.checkout import request_payment_link
from services.errors import ExternalServiceError, Forbidden, InvalidState, NotFound, ValidationError
from services.slot_availability import get_service
from utils.audit import log_event
from utils.validation import parse_id

logger = logging.getLogger(__name__)

BOOKING_RETURN_PATH = "/activity-history?tab=bookings"
SLOT_TAKEN_MESSAGE = "Cameraman already has a booking at this time"


@dataclass
class BookingCheckout:
    booking: Booking
    payment: Payment
    order_code: int
    checkout_url: str


def parse_scheduled_date(value) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError("Invalid date. Use YYYY-MM-DD")


def parse_time_of_day(value) -> str:
    try:
        return TimeOfDay(value).value
    except ValueError:
        allowed = ", ".join(t.value for t in TimeOfDay)
        raise ValidationError(f"Invalid time_of_day. Use one of: {allowed}")


def _get_cameraman(cameraman_id) -> User:
    cameraman = db.session.get(User, parse_id(cameraman_id, "cameraman_id"))
    if not cameraman or not cameraman.has_role(RoleName.CAMERAMAN):
        raise NotFound("Cameraman not found")
    return cameraman


def _slot_taken(cameraman_id: int, day: date, time_of_day: str) -> bool:
    return (
        Booking.query
        .filter(
            Booking.cameraman_id == cameraman_id,
            Booking.scheduled_date == day,
            Booking.time_of_day == time_of_day,
            Booking.status.in_(ACTIVE_BOOKING_STATUSES),
        )
        .first()
        is not None
    )


def create_booking(customer: User, cameraman_id, service_id, scheduled_date, time_of_day,
                   gateway) -> BookingCheckout:
    if not customer.has_role(RoleName.CUSTOMER):
        raise Forbidden("Only customers can create bookings")
    if not cameraman_id or not service_id or not scheduled_date or not time_of_day:
        raise ValidationError("cameraman_id, service_id, scheduled_date and time_of_day are required")

    day = parse_scheduled_date(scheduled_date)
    slot = parse_time_of_day(time_of_day)

    cameraman = _get_cameraman(cameraman_id)
    service = get_service(service_id)

    if service.cameraman_id != cameraman.id:
        raise ValidationError("Service does not belong to this cameraman")
    if service.date_get_job != day or slot not in (service.time_of_day or []):
        raise ValidationError("Service is not offered at the requested date and time")

    if _slot_taken(cameraman.id, day, slot):
        raise InvalidState(SLOT_TAKEN_MESSAGE)

    booking = Booking(
        customer_id=customer.id,
        cameraman_id=cameraman.id,
        service_id=service.id,
        scheduled_date=day,
        time_of_day=slot,
        amount=service.amount,
        status=BookingStatus.PAYING.value,
    )
    db.session.add(booking)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        # a concurrent request won the slot between our read and insert
        log_event("BOOKING_FAIL_SLOT_TAKEN", user_id=customer.id, entity="service", entity_id=service.id)
        raise InvalidState(SLOT_TAKEN_MESSAGE)

    payment = ledger.open_booking_payment(booking)
    order_code = pending_transactions.generate_order_code()
    pending_transactions.register(
        order_code,
        TransactionKind.BOOKING_PAYMENT,
        customer.id,
        pending_transactions.BookingPaymentPayload(booking_id=booking.id, payment_id=payment.id),
        commit=False,
    )

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise InvalidState(SLOT_TAKEN_MESSAGE)

    log_event(
        "BOOKING_CREATE", user_id=customer.id, entity="booking", entity_id=booking.id,
        metadata={"payment_id": payment.id, "order_code": order_code},
    )

    # Booking, payment and pending transaction stay committed if the gateway
    # fails; the stale-booking sweep cancels them after the TTL.
    try:
        link = request_payment_link(gateway, order_code, booking.amount, "Booking payment", BOOKING_RETURN_PATH)
    except ExternalServiceError:
        logger.error("No checkout link for booking %s (order %s)", booking.id, order_code)
        raise

    return BookingCheckout(booking=booking, payment=payment, order_code=order_code, checkout_url=link.checkout_url)


def transition(booking_id: int, expected: BookingStatus, target: BookingStatus) -> Booking:
    """Compare-and-set the booking status. Does not commit."""
    updated = (
        Booking.query
        .filter_by(id=booking_id, status=expected.value)
        .update({"status": target.value, "updated_at": utcnow()}, synchronize_session="fetch")
    )
    if updated != 1:
        if db.session.get(Booking, booking_id) is None:
            raise NotFound("Booking not found")
        raise InvalidState(f"Booking is not {expected.value}")
    return db.session.get(Booking, booking_id)


def complete_booking(actor: User, booking_id: int) -> Booking:
    booking = db.session.get(Booking, booking_id)
    if not booking:
        raise NotFound("Booking not found")
    if booking.cameraman_id != actor.id:
        raise Forbidden("You are not allowed to complete this booking")

    try:
        booking = transition(booking.id, BookingStatus.REQUESTED, BookingStatus.COMPLETED)
    except InvalidState:
        db.session.rollback()
        raise InvalidState("Only REQUESTED bookings can be completed")
    db.session.commit()

    log_event("BOOKING_COMPLETE", user_id=actor.id, entity="booking", entity_id=booking.id)
    return booking


def get_booking(actor: User, booking_id: int) -> Booking:
    booking = db.session.get(Booking, booking_id)
    if not booking:
        raise NotFound("Booking not found")

    is_party = actor.id in (booking.customer_id, booking.cameraman_id)
    if not is_party and not actor.has_role(RoleName.ADMIN):
        raise Forbidden("You are not allowed to view this booking")
    return booking


def list_bookings(actor: User, role_filter: str = None, status: str = None,
                  page: int = 1, page_size: int = 10):
    """Bookings where the actor is the customer and/or the cameraman. Returns (rows, total)."""
    if role_filter == "customer":
        q = Booking.query.filter(Booking.customer_id == actor.id)
    elif role_filter == "cameraman":
        q = Booking.query.filter(Booking.cameraman_id == actor.id)
    elif role_filter:
        raise ValidationError("role must be customer or cameraman")
    else:
        q = Booking.query.filter(
            db.or_(Booking.customer_id == actor.id, Booking.cameraman_id == actor.id)
        )

    if status:
        if status not in {s.value for s in BookingStatus}:
            raise ValidationError("Invalid booking status")
        q = q.filter(Booking.status == status)

    total = q.count()
    rows = (
        q.order_by(Booking.created_at.desc(), Booking.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return rows, total
