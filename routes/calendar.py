import secrets

from flask import Blueprint, request, jsonify

from models import db
from models.calendar_subscriber import CalendarSubscriber
from services.validation import EMAIL_RE, normalize_email
from utils.audit import log_event
from utils.clock import utcnow

calendar_bp = Blueprint("calendar", __name__, url_prefix="/calendar-subscriptions")


@calendar_bp.post("")
def subscribe():
    data = request.get_json(silent=True) or {}
    email = normalize_email(data.get("email"))
    if not email or not EMAIL_RE.match(email):
        return jsonify(error="A valid email is required"), 400

    sub = CalendarSubscriber.query.filter_by(email=email).first()
    if sub and sub.is_active:
        return jsonify(message="Already subscribed"), 200

    if sub:
        sub.is_active = True
        sub.unsubscribed_at = None
        sub.unsubscribe_token = secrets.token_urlsafe(32)
    else:
        sub = CalendarSubscriber(email=email, unsubscribe_token=secrets.token_urlsafe(32), created_at=utcnow())
        db.session.add(sub)
    db.session.commit()

    log_event("CALENDAR_SUBSCRIBE", entity="calendar_subscriber", entity_id=sub.id)
    return jsonify(message="Subscribed"), 201


@calendar_bp.get("/unsubscribe")
def unsubscribe():
    token = (request.args.get("token") or "").strip()
    if not token:
        return jsonify(error="token is required"), 400

    sub = CalendarSubscriber.query.filter_by(unsubscribe_token=token).first()
    if not sub:
        return jsonify(error="Subscription not found"), 404

    if sub.is_active:
        sub.is_active = False
        sub.unsubscribed_at = utcnow()
        db.session.commit()
        log_event("CALENDAR_UNSUBSCRIBE", entity="calendar_subscriber", entity_id=sub.id)
    return jsonify(message="Unsubscribed"), 200
