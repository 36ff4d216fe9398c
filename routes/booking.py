from flask import Blueprint, request, jsonify, g

from models.enums import RoleName
from security.rbac import login_required, require_roles
from services import bookings
from services.checkout import get_gateway
from utils.pagination import page_args, pagination_meta
from utils.serializers import booking_json, payment_json

booking_bp = Blueprint("booking", __name__, url_prefix="/bookings")


# ---------- CUSTOMERS: book a cameraman slot (opens a payment) ----------
@booking_bp.post("")
@require_roles(RoleName.CUSTOMER)
def create_booking():
    data = request.get_json(silent=True) or {}

    checkout = bookings.create_booking(
        g.user,
        cameraman_id=data.get("cameraman_id"),
        service_id=data.get("service_id"),
        scheduled_date=data.get("scheduled_date"),
        time_of_day=data.get("time_of_day"),
        gateway=get_gateway(),
    )

    return jsonify(
        booking=booking_json(checkout.booking),
        payment=payment_json(checkout.payment),
        paymentUrl=checkout.checkout_url,
        orderCode=checkout.order_code,
    ), 201


# ---------- CAMERAMEN: mark a requested booking as done ----------
@booking_bp.patch("/<int:booking_id>/complete")
@require_roles(RoleName.CAMERAMAN)
def complete_booking(booking_id: int):
    booking = bookings.complete_booking(g.user, booking_id)
    return jsonify(message="Booking completed", booking=booking_json(booking)), 200


# ---------- ANY PARTY: my bookings ----------
@booking_bp.get("")
@login_required
def list_bookings():
    page, page_size = page_args()
    rows, total = bookings.list_bookings(
        g.user,
        role_filter=request.args.get("role"),
        status=request.args.get("status"),
        page=page,
        page_size=page_size,
    )
    return jsonify(
        data=[booking_json(b) for b in rows],
        pagination=pagination_meta(page, page_size, total),
    ), 200


@booking_bp.get("/<int:booking_id>")
@login_required
def get_booking(booking_id: int):
    booking = bookings.get_booking(g.user, booking_id)
    return jsonify(booking_json(booking)), 200
