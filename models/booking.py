from models.db import db, utcnow
from models.enums import BookingStatus

_ACTIVE_SLOT = db.text("status IN ('PAYING', 'REQUESTED')")

class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    cameraman_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    service_id = db.Column(db.Integer, db.ForeignKey("services.id"), nullable=False, index=True)

    scheduled_date = db.Column(db.Date, nullable=False)
    time_of_day = db.Column(db.String(20), nullable=False)
    amount = db.Column(db.Integer, nullable=False)  # smallest unit

    status = db.Column(db.String(20), nullable=False, default=BookingStatus.PAYING.value)
    # PAYING -> REQUESTED | PAY_CANCELLED, REQUESTED -> COMPLETED

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        # Hard business-rule: one PAYING/REQUESTED booking per cameraman slot
        db.Index(
            "uq_booking_active_slot",
            "cameraman_id", "scheduled_date", "time_of_day",
            unique=True,
            sqlite_where=_ACTIVE_SLOT,
            postgresql_where=_ACTIVE_SLOT,
        ),
        db.CheckConstraint("amount >= 0", name="ck_booking_amount_non_negative"),
    )
