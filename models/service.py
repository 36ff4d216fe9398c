from models.db import db, utcnow

class Service(db.Model):
    __tablename__ = "services"

    id = db.Column(db.Integer, primary_key=True)
    cameraman_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    title = db.Column(db.String(160), nullable=False)
    description = db.Column(db.Text, nullable=True)
    amount = db.Column(db.Integer, nullable=False)  # smallest currency unit

    # the working day the service is offered on, and its time-of-day slots
    date_get_job = db.Column(db.Date, nullable=False)
    time_of_day = db.Column(db.JSON, nullable=False, default=list)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
