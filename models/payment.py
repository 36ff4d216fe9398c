from models.db import db, utcnow
from models.enums import PaymentStatus, PaymentType

class Payment(db.Model):
    __tablename__ = "payments"

    id = db.Column(db.Integer, primary_key=True)
    # one payment per booking intent; never reassigned
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=True, unique=True, index=True)

    type = db.Column(db.String(20), nullable=False, default=PaymentType.BOOKING.value)
    amount = db.Column(db.Integer, nullable=False)   # smallest unit

    status = db.Column(db.String(20), nullable=False, default=PaymentStatus.PROCESSING.value)  # PROCESSING, PAID, FAILED

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    paid_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        db.CheckConstraint("amount >= 0", name="ck_payment_amount_non_negative"),
    )
