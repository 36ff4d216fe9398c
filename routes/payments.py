from flask import Blueprint, request, jsonify, g

from models.enums import RoleName
from security.rbac import login_required, require_roles
from services import payments, purchases, subscriptions
from services.checkout import get_gateway
from utils.pagination import page_args, pagination_meta
from utils.serializers import payment_json

payments_bp = Blueprint("payments", __name__, url_prefix="/payments")


def _list(mine: bool):
    page, page_size = page_args()
    rows, total = payments.list_payments(
        g.user,
        status=request.args.get("status"),
        payment_type=request.args.get("type"),
        start_date=request.args.get("start_date"),
        end_date=request.args.get("end_date"),
        page=page,
        page_size=page_size,
        mine=mine,
    )
    return jsonify(
        data=[payment_json(p) for p in rows],
        pagination=pagination_meta(page, page_size, total),
    ), 200


@payments_bp.get("")
@require_roles(RoleName.ADMIN)
def list_all_payments():
    return _list(mine=False)


@payments_bp.get("/me")
@login_required
def my_payments():
    return _list(mine=True)


@payments_bp.get("/<int:payment_id>")
@login_required
def get_payment(payment_id: int):
    return jsonify(payment_json(payments.get_payment(g.user, payment_id))), 200


@payments_bp.post("/buy-service")
@require_roles(RoleName.CUSTOMER)
def buy_service():
    data = request.get_json(silent=True) or {}
    checkout = purchases.start_service_checkout(g.user, data.get("service_id"), get_gateway())
    return jsonify(paymentUrl=checkout.checkout_url, orderCode=checkout.order_code, amount=checkout.amount), 200


@payments_bp.post("/membership")
@require_roles(RoleName.CAMERAMAN)
def buy_membership():
    data = request.get_json(silent=True) or {}
    checkout = subscriptions.start_subscription_checkout(g.user, data.get("membership_type"), get_gateway())
    return jsonify(paymentUrl=checkout.checkout_url, orderCode=checkout.order_code, amount=checkout.amount), 200
