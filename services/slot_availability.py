from datetime import date

from models import db
from models.booking import Booking
from models.enums import ACTIVE_BOOKING_STATUSES
from models.service import Service
from services.errors import NotFound
from utils.validation import parse_id


def get_service(service_id: int) -> Service:
    service = db.session.get(Service, parse_id(service_id, "service_id"))
    if not service or not service.is_active:
        raise NotFound("Service not found")
    return service


def taken_slots(cameraman_id: int, day: date) -> set:
    rows = (
        db.session.query(Booking.time_of_day)
        .filter(
            Booking.cameraman_id == cameraman_id,
            Booking.scheduled_date == day,
            Booking.status.in_(ACTIVE_BOOKING_STATUSES),
        )
        .all()
    )
    return {r.time_of_day for r in rows}


def free_slots(service_id: int, day: date) -> list:
    """
    Time-of-day slots of a service still open on `day`.

    Empty when `day` is not the service's working day. Slots held by a
    PAYING or REQUESTED booking of the same cameraman are excluded. The
    service's own slot order is preserved.
    """
    service = get_service(service_id)
    if service.date_get_job != day:
        return []

    taken = taken_slots(service.cameraman_id, day)
    return [slot for slot in (service.time_of_day or []) if slot not in taken]
