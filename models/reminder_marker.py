from models.db import db
from utils.clock import utcnow


class ReminderMarker(db.Model):
    __tablename__ = "reminder_markers"

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=False, index=True)
    recipient_email = db.Column(db.String(255), nullable=False)
    tier = db.Column(db.String(20), nullable=False)  # event_48h, event_24h

    sent_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        # one reminder per recipient per booking per tier
        db.UniqueConstraint("booking_id", "recipient_email", "tier", name="uq_reminder_once"),
    )
