from models.db import db
from utils.clock import utcnow

AUDIT_ACTORS = ("customer", "owner", "system")


class AuditLog(db.Model):
    """Append-only trail of booking and payment events."""
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    actor = db.Column(db.String(20), nullable=False, default="customer", index=True)
    action = db.Column(db.String(80), nullable=False, index=True)  # BOOKING_CREATE, P2P_MANUAL_APPROVE, ...
    entity = db.Column(db.String(80), nullable=True)               # booking, calendar_subscriber
    entity_id = db.Column(db.String(80), nullable=True)

    # request details; empty for scheduler sweeps
    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    metadata_json = db.Column(db.Text, nullable=True)

    timestamp = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

    __table_args__ = (
        db.Index("ix_audit_logs_entity", "entity", "entity_id"),
    )
