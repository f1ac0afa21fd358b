from models.db import db
from utils.clock import utcnow

BOOKING_STATUSES = ("pending", "confirmed", "completed", "cancelled")
PAYMENT_METHODS = ("card", "peer_to_peer")

# statuses that hold a (date, time slot) against other bookings
HOLDING_STATUSES = ("confirmed", "completed")


class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    customer_name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(30), nullable=False)
    phone_normalized = db.Column(db.String(10), nullable=False, index=True)
    address = db.Column(db.String(255), nullable=False)
    postal_code = db.Column(db.String(5), nullable=False)
    party_size = db.Column(db.Integer, nullable=False)

    package_type = db.Column(db.String(40), nullable=False)
    event_date = db.Column(db.String(40), nullable=False, index=True)  # YYYY-MM-DD
    event_time = db.Column(db.String(20), nullable=False)              # e.g. "2:00 PM"
    notes = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(20), nullable=False, default="pending", index=True)
    # status values: pending, confirmed, completed, cancelled

    payment_method = db.Column(db.String(20), nullable=True)  # card, peer_to_peer

    # money in cents
    expected_amount_cents = db.Column(db.Integer, nullable=True)
    received_amount_cents = db.Column(db.Integer, nullable=True)
    amount_paid_cents = db.Column(db.Integer, nullable=True)
    travel_fee_cents = db.Column(db.Integer, nullable=False, default=0)
    travel_distance_miles = db.Column(db.Float, nullable=True)

    # card rail
    stripe_session_id = db.Column(db.String(255), nullable=True, unique=True, index=True)

    # peer-to-peer rail
    evidence_ref = db.Column(db.String(255), nullable=True)
    evidence_confidence = db.Column(db.String(10), nullable=True)
    needs_manual_review = db.Column(db.Boolean, nullable=False, default=False)
    payment_verified = db.Column(db.Boolean, nullable=False, default=False)
    payment_verified_at = db.Column(db.DateTime, nullable=True)
    verification_notes = db.Column(db.Text, nullable=True)

    confirmation_number = db.Column(db.String(20), nullable=True, unique=True)
    confirmed_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)

    pending_expires_at = db.Column(db.DateTime, nullable=True, index=True)
    reminder_sent_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancel_note = db.Column(db.String(255), nullable=True)

    __table_args__ = (
        db.CheckConstraint("party_size > 0", name="ck_bookings_party_size_positive"),
        db.CheckConstraint(
            "amount_paid_cents IS NULL OR status IN ('confirmed', 'completed', 'cancelled')",
            name="ck_bookings_paid_state",
        ),
    )
