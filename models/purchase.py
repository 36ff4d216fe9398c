from models.db import db, utcnow

class Purchase(db.Model):
    __tablename__ = "purchases"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    service_id = db.Column(db.Integer, db.ForeignKey("services.id"), nullable=True)

    payment_method = db.Column(db.String(40), nullable=False, default="internet_banking")
    amount = db.Column(db.Integer, nullable=False)
    transaction_code = db.Column(db.BigInteger, unique=True, nullable=False)  # gateway order code

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
