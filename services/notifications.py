import logging

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.notification import Notification

logger = logging.getLogger(__name__)


def emit(user_id: int, notification_type, content: str) -> bool:
    """
    Fire-and-forget: store a notification for `user_id`.

    Must be called after the business transaction is committed. Failures are
    retried a few times, then logged and dropped; they never propagate.
    """
    type_value = getattr(notification_type, "value", notification_type)
    attempts = max(1, current_app.config.get("NOTIFICATION_MAX_ATTEMPTS", 3))

    for attempt in range(1, attempts + 1):
        try:
            db.session.add(Notification(user_id=user_id, type=type_value, content=content))
            db.session.commit()
            return True
        except SQLAlchemyError:
            db.session.rollback()
            logger.warning(
                "Notification %s for user %s failed (attempt %s/%s)",
                type_value, user_id, attempt, attempts, exc_info=True,
            )

    logger.error("Dropping notification %s for user %s", type_value, user_id)
    return False


def list_for_user(user_id: int, page: int = 1, page_size: int = 10):
    q = Notification.query.filter_by(user_id=user_id)
    total = q.count()
    rows = (
        q.order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return rows, total
