from flask import Blueprint, jsonify, g

from security.rbac import login_required
from services import notifications
from utils.pagination import page_args, pagination_meta
from utils.serializers import notification_json

notifications_bp = Blueprint("notifications", __name__, url_prefix="/notifications")


@notifications_bp.get("")
@login_required
def my_notifications():
    page, page_size = page_args()
    rows, total = notifications.list_for_user(g.user.id, page=page, page_size=page_size)
    return jsonify(
        data=[notification_json(n) for n in rows],
        pagination=pagination_meta(page, page_size, total),
    ), 200
