import stripe
from flask import Blueprint, request, jsonify, current_app

from services import card_gateway, reconciliation
from services.card_gateway import CheckoutStatus
from services.errors import BookingError
from utils.audit import log_event
from utils.clock import utcnow

webhook_bp = Blueprint("webhook", __name__, url_prefix="/webhooks")


@webhook_bp.post("/stripe")
def stripe_webhook():
    sig_header = request.headers.get("Stripe-Signature")
    payload = request.data

    try:
        event = card_gateway.construct_webhook_event(payload, sig_header)
    except (ValueError, stripe.SignatureVerificationError):
        return jsonify(error="Invalid webhook signature"), 400

    if event.get("type") != "checkout.session.completed":
        return jsonify(received=True), 200

    session = (event.get("data") or {}).get("object") or {}
    meta = session.get("metadata") or {}
    try:
        booking_id = int(meta.get("booking_id"))
    except (TypeError, ValueError):
        current_app.logger.info("Stripe session %s has no booking_id metadata", session.get("id"))
        return jsonify(received=True), 200

    status = CheckoutStatus(
        session_id=session.get("id"),
        paid=session.get("payment_status") == "paid",
        amount_cents=int(session.get("amount_total") or 0),
        booking_id=booking_id,
    )

    try:
        booking = reconciliation.confirm_card_payment(booking_id, status, utcnow())
    except BookingError as exc:
        # duplicate deliveries and unpaid sessions are acknowledged so Stripe stops retrying
        current_app.logger.info("Webhook for booking %s not applied: %s", booking_id, exc.reason)
        return jsonify(received=True, applied=False, reason=exc.reason), 200

    log_event("PAYMENT_PAID", actor="system", entity="booking", entity_id=booking.id,
              metadata={"stripe_session_id": status.session_id, "source": "webhook"})
    return jsonify(received=True, applied=True), 200
