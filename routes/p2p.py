from flask import Blueprint, request, jsonify, current_app, send_from_directory

from security.rbac import require_owner
from services import ledger, reconciliation
from services.evidence_scorer import dollars_to_cents
from utils.audit import log_event
from utils.clock import utcnow
from utils.serializers import serialize_booking

p2p_bp = Blueprint("p2p", __name__, url_prefix="/p2p")


# ---------- CUSTOMERS: pay by peer-to-peer transfer ----------
@p2p_bp.post("/<int:booking_id>/select")
def select_p2p(booking_id: int):
    booking = ledger.get_booking(booking_id)
    instructions = reconciliation.select_peer_to_peer(booking)
    log_event("PAYMENT_METHOD_P2P", entity="booking", entity_id=booking.id,
              metadata={"expected_amount_cents": booking.expected_amount_cents})
    return jsonify(instructions), 200


@p2p_bp.post("/<int:booking_id>/evidence")
def upload_evidence(booking_id: int):
    upload = request.files.get("receipt")
    if upload is None or not upload.filename:
        return jsonify(error="receipt file is required"), 400

    image_bytes = upload.read()
    booking, outcome = reconciliation.submit_evidence(
        booking_id, image_bytes, upload.filename, utcnow(),
        mime_type=upload.mimetype or "image/jpeg",
    )

    log_event("P2P_EVIDENCE_" + outcome.upper(), entity="booking", entity_id=booking.id,
              metadata={"received_amount_cents": booking.received_amount_cents,
                        "confidence": booking.evidence_confidence})

    if outcome == "confirmed":
        message = "Payment verified. Your booking is confirmed!"
    else:
        message = "Thanks! We received your receipt and will confirm your booking shortly."
    return jsonify(outcome=outcome, message=message, booking=serialize_booking(booking, full=False)), 200


# ---------- OWNER: review queue ----------
@p2p_bp.get("/pending")
@require_owner
def pending_review():
    rows = ledger.pending_peer_to_peer_review()
    return jsonify([serialize_booking(b) for b in rows]), 200


@p2p_bp.get("/<int:booking_id>/evidence")
@require_owner
def view_evidence(booking_id: int):
    booking = ledger.get_booking(booking_id)
    if not booking.evidence_ref:
        return jsonify(error="No receipt uploaded"), 404
    return send_from_directory(current_app.config["UPLOAD_FOLDER"], booking.evidence_ref)


@p2p_bp.post("/verify")
@require_owner
def verify_p2p():
    data = request.get_json(silent=True) or {}
    booking_id = data.get("booking_id")
    verified = data.get("verified")
    if not booking_id or not isinstance(verified, bool):
        return jsonify(error="booking_id and verified (true/false) are required"), 400

    if data.get("received_amount_cents") is not None:
        try:
            amount_cents = int(data.get("received_amount_cents"))
        except (TypeError, ValueError):
            return jsonify(error="Invalid received amount"), 400
    elif data.get("received_amount") not in (None, ""):
        amount_cents = dollars_to_cents(data.get("received_amount"))
        if amount_cents is None:
            return jsonify(error="Invalid received amount"), 400
    else:
        amount_cents = None
    if amount_cents is not None and amount_cents < 0:
        return jsonify(error="Invalid received amount"), 400

    notes = (data.get("notes") or "").strip() or None
    booking = reconciliation.manual_verify(booking_id, verified, amount_cents, utcnow(), notes=notes)

    log_event("P2P_MANUAL_" + ("APPROVE" if verified else "REJECT"), actor="owner", entity="booking",
              entity_id=booking.id, metadata={"amount_cents": amount_cents, "notes": notes})
    return jsonify(serialize_booking(booking)), 200
