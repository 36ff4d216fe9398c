"""
Pending-transaction correlator.

A row maps a gateway order code to what has to happen when the gateway calls
back. ``consume`` is a fetch followed by a conditional delete: only the caller
whose DELETE removes the row gets the transaction back, every other caller
(duplicate webhook, concurrent sweep) sees NotFound.
"""
import secrets
from dataclasses import dataclass
from datetime import date
from typing import Optional, Union

from sqlalchemy.exc import IntegrityError

from models import db
from models.enums import MembershipTier, TransactionKind
from models.pending_transaction import PendingTransaction
from services.errors import Conflict, NotFound, ValidationError

# gateways take order codes as integers in the JS safe range
MAX_ORDER_CODE = 2 ** 53 - 1


@dataclass(frozen=True)
class BookingPaymentPayload:
    booking_id: int
    payment_id: int


@dataclass(frozen=True)
class BuyServicePayload:
    service_id: int
    amount: int


@dataclass(frozen=True)
class MembershipSubscriptionPayload:
    tier: MembershipTier
    amount: int


@dataclass(frozen=True)
class LegacySchedulePayload:
    customer_id: int
    cameraman_id: int
    appointment_date: date
    slot: str
    place: Optional[str]
    service_id: Optional[int]


Payload = Union[BookingPaymentPayload, BuyServicePayload, MembershipSubscriptionPayload, LegacySchedulePayload]

PAYLOAD_TYPES = {
    TransactionKind.BOOKING_PAYMENT: BookingPaymentPayload,
    TransactionKind.BUY_SERVICE: BuyServicePayload,
    TransactionKind.MEMBERSHIP_SUBSCRIPTION: MembershipSubscriptionPayload,
    TransactionKind.LEGACY_SCHEDULE: LegacySchedulePayload,
}
if set(PAYLOAD_TYPES) != set(TransactionKind):
    raise RuntimeError("Every transaction kind needs a payload type")


@dataclass(frozen=True)
class ConsumedTransaction:
    order_code: int
    kind: TransactionKind
    user_id: int
    payload: Payload


def generate_order_code() -> int:
    return secrets.randbelow(MAX_ORDER_CODE) + 1


def _apply_payload(row: PendingTransaction, payload) -> None:
    if isinstance(payload, BookingPaymentPayload):
        row.booking_id = payload.booking_id
        row.payment_id = payload.payment_id
    elif isinstance(payload, BuyServicePayload):
        row.service_id = payload.service_id
        row.amount = payload.amount
    elif isinstance(payload, MembershipSubscriptionPayload):
        row.membership_tier = MembershipTier(payload.tier).value
        row.amount = payload.amount
    elif isinstance(payload, LegacySchedulePayload):
        row.service_id = payload.service_id
        row.extra_json = {
            "customer_id": payload.customer_id,
            "cameraman_id": payload.cameraman_id,
            "appointment_date": payload.appointment_date.isoformat(),
            "slot": payload.slot,
            "place": payload.place,
        }


def _read_payload(row: PendingTransaction) -> Payload:
    kind = TransactionKind(row.kind)
    if kind is TransactionKind.BOOKING_PAYMENT:
        return BookingPaymentPayload(booking_id=row.booking_id, payment_id=row.payment_id)
    if kind is TransactionKind.BUY_SERVICE:
        return BuyServicePayload(service_id=row.service_id, amount=row.amount)
    if kind is TransactionKind.MEMBERSHIP_SUBSCRIPTION:
        return MembershipSubscriptionPayload(tier=MembershipTier(row.membership_tier), amount=row.amount)
    extra = row.extra_json or {}
    return LegacySchedulePayload(
        customer_id=extra.get("customer_id"),
        cameraman_id=extra.get("cameraman_id"),
        appointment_date=date.fromisoformat(extra["appointment_date"]),
        slot=extra.get("slot"),
        place=extra.get("place"),
        service_id=row.service_id,
    )


def _snapshot(row: PendingTransaction) -> ConsumedTransaction:
    return ConsumedTransaction(
        order_code=row.order_code,
        kind=TransactionKind(row.kind),
        user_id=row.user_id,
        payload=_read_payload(row),
    )


def register(order_code: int, kind, user_id: int, payload: Payload, commit: bool = True) -> PendingTransaction:
    """Register an order code; Conflict if it is already taken.

    With ``commit=False`` the row is only flushed so the caller can commit it
    together with the records it refers to.
    """
    kind = TransactionKind(kind)
    if not isinstance(payload, PAYLOAD_TYPES[kind]):
        raise ValidationError(f"Payload does not match transaction kind {kind.value}")

    if PendingTransaction.query.filter_by(order_code=order_code).first():
        raise Conflict("Order code already registered")

    row = PendingTransaction(order_code=order_code, kind=kind.value, user_id=user_id)
    _apply_payload(row, payload)
    db.session.add(row)

    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("Order code already registered")

    if commit:
        db.session.commit()
    return row


def _delete_if_present(row_id: int) -> bool:
    deleted = (
        PendingTransaction.query
        .filter_by(id=row_id)
        .delete(synchronize_session=False)
    )
    return deleted == 1


def consume(order_code: int) -> ConsumedTransaction:
    """Atomically fetch and delete; NotFound when already consumed or unknown."""
    row = PendingTransaction.query.filter_by(order_code=order_code).first()
    if not row:
        db.session.rollback()
        raise NotFound("Pending transaction not found")

    snapshot = _snapshot(row)
    if not _delete_if_present(row.id):
        db.session.rollback()
        raise NotFound("Pending transaction not found")

    db.session.commit()
    return snapshot


def consume_for_booking(booking_id: int) -> Optional[ConsumedTransaction]:
    """Consume the booking_payment transaction of a booking, if still pending."""
    row = PendingTransaction.query.filter_by(
        booking_id=booking_id, kind=TransactionKind.BOOKING_PAYMENT.value
    ).first()
    if not row:
        return None

    snapshot = _snapshot(row)
    if not _delete_if_present(row.id):
        db.session.rollback()
        return None

    db.session.commit()
    return snapshot


def is_pending(order_code: int) -> bool:
    return PendingTransaction.query.filter_by(order_code=order_code).first() is not None
