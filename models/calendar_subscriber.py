from models.db import db
from utils.clock import utcnow


class CalendarSubscriber(db.Model):
    __tablename__ = "calendar_subscribers"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)  # normalized
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    unsubscribe_token = db.Column(db.String(64), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    unsubscribed_at = db.Column(db.DateTime, nullable=True)
