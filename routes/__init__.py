from .health import health_bp
from .auth import auth_bp
from .booking import booking_bp
from .service_slots import service_bp
from .payments import payments_bp
from .webhooks import webhook_bp
from .notifications import notifications_bp

ALL_BLUEPRINTS = (
    health_bp,
    auth_bp,
    booking_bp,
    service_bp,
    payments_bp,
    webhook_bp,
    notifications_bp,
)
