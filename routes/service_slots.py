from flask import Blueprint, request, jsonify

from services.bookings import parse_scheduled_date
from services.errors import ValidationError
from services.slot_availability import free_slots

service_bp = Blueprint("service", __name__, url_prefix="/services")


@service_bp.post("/free-slots")
def get_free_slots():
    data = request.get_json(silent=True) or {}
    service_id = data.get("service_id")
    day = data.get("date") or data.get("date_get_job")

    if not service_id or not day:
        raise ValidationError("service_id and date are required")

    return jsonify(free_slots(service_id, parse_scheduled_date(day))), 200
