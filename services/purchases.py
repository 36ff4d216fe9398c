from dataclasses import dataclass

from models import db
from models.enums import RoleName, TransactionKind
from models.purchase import Purchase
from models.schedule import Schedule
from models.user import User
from services import pending_transactions
from services.checkout import request_payment_link
from services.errors import Forbidden, ValidationError
from services.slot_availability import get_service

PAYMENT_METHOD = "internet_banking"


@dataclass
class ServiceCheckout:
    order_code: int
    amount: int
    checkout_url: str


def start_service_checkout(user: User, service_id, gateway) -> ServiceCheckout:
    if not user.has_role(RoleName.CUSTOMER):
        raise Forbidden("Only customers can buy services")
    if not service_id:
        raise ValidationError("service_id is required")

    service = get_service(service_id)
    order_code = pending_transactions.generate_order_code()
    pending_transactions.register(
        order_code,
        TransactionKind.BUY_SERVICE,
        user.id,
        pending_transactions.BuyServicePayload(service_id=service.id, amount=service.amount),
    )
    link = request_payment_link(gateway, order_code, service.amount, "Service payment")
    return ServiceCheckout(order_code=order_code, amount=service.amount, checkout_url=link.checkout_url)


def record_purchase(user_id: int, service_id, amount: int, order_code: int) -> Purchase:
    """Add a purchase entry. Does not commit."""
    purchase = Purchase(
        user_id=user_id,
        service_id=service_id,
        payment_method=PAYMENT_METHOD,
        amount=amount,
        transaction_code=order_code,
    )
    db.session.add(purchase)
    return purchase


def materialize_schedule(payload: pending_transactions.LegacySchedulePayload) -> Schedule:
    """Add a schedule row from a legacy transaction. Does not commit."""
    schedule = Schedule(
        customer_id=payload.customer_id,
        cameraman_id=payload.cameraman_id,
        service_id=payload.service_id,
        appointment_date=payload.appointment_date,
        slot=payload.slot,
        place=payload.place,
    )
    db.session.add(schedule)
    return schedule
