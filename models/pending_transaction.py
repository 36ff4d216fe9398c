from models.db import db, utcnow

class PendingTransaction(db.Model):
    """
    Correlates a gateway order code with the action to run when the gateway
    calls back. Deleted by whoever consumes it first.
    """
    __tablename__ = "pending_transactions"

    id = db.Column(db.Integer, primary_key=True)
    order_code = db.Column(db.BigInteger, unique=True, nullable=False, index=True)
    kind = db.Column(db.String(40), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    # kind-specific references
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=True, index=True)
    payment_id = db.Column(db.Integer, db.ForeignKey("payments.id"), nullable=True)
    service_id = db.Column(db.Integer, db.ForeignKey("services.id"), nullable=True)
    membership_tier = db.Column(db.String(20), nullable=True)
    amount = db.Column(db.Integer, nullable=True)
    # legacy schedule details (customer, cameraman, date, slot, place)
    extra_json = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
