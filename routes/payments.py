from flask import Blueprint, request, jsonify

from services import ledger, reconciliation
from utils.audit import log_event
from utils.clock import utcnow
from utils.serializers import serialize_booking

payments_bp = Blueprint("payments", __name__, url_prefix="/payments")


@payments_bp.post("/checkout")
def start_checkout():
    data = request.get_json(silent=True) or {}
    booking_id = data.get("booking_id")
    if not booking_id:
        return jsonify(error="booking_id required"), 400

    booking = ledger.get_booking(booking_id)
    checkout_url = reconciliation.start_card_checkout(booking)

    log_event("PAYMENT_SESSION_CREATED", entity="booking", entity_id=booking.id,
              metadata={"stripe_session_id": booking.stripe_session_id,
                        "expected_amount_cents": booking.expected_amount_cents})
    return jsonify(checkout_url=checkout_url, expected_amount_cents=booking.expected_amount_cents), 200


@payments_bp.post("/verify")
def verify_payment():
    data = request.get_json(silent=True) or {}
    session_id = (data.get("session_id") or "").strip()
    booking_id = data.get("booking_id")
    if not booking_id or not session_id:
        return jsonify(error="session_id and booking_id are required"), 400

    booking = reconciliation.verify_card_payment(booking_id, session_id, utcnow())

    log_event("PAYMENT_PAID", entity="booking", entity_id=booking.id,
              metadata={"stripe_session_id": session_id, "amount_paid_cents": booking.amount_paid_cents})
    return jsonify(serialize_booking(booking, full=False)), 200
