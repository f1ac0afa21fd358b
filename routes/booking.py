from flask import Blueprint, request, jsonify, current_app

from models.booking import BOOKING_STATUSES
from security.rbac import is_owner, require_owner
from services import ledger, notifications, travel_fee
from services.identity import resolve_identity
from services.validation import normalize_phone, validate_booking_input, validate_slot
from utils.audit import log_event
from utils.clock import utcnow
from utils.serializers import serialize_booking

booking_bp = Blueprint("booking", __name__)


def _load_for_customer(booking_id: int, data: dict):
    """
    The owner may act on any booking; customers must present the phone
    number the booking was made with. Mismatches look like a missing booking.
    """
    booking = ledger.get_booking(booking_id)
    if is_owner():
        return booking, "owner"
    if normalize_phone(data.get("phone") or "") != booking.phone_normalized:
        return None, None
    return booking, "customer"


# ---------- CUSTOMERS: create booking ----------
@booking_bp.post("/bookings")
def create_booking():
    data = request.get_json(silent=True) or {}
    now = utcnow()

    draft = validate_booking_input(data, now)
    quote = travel_fee.quote_for_address(f"{draft.address} {draft.postal_code}")
    booking = ledger.create_booking(draft, now, travel_quote=quote)

    log_event("BOOKING_CREATE", entity="booking", entity_id=booking.id,
              metadata={"event_date": booking.event_date, "event_time": booking.event_time})
    return jsonify(serialize_booking(booking)), 201


@booking_bp.get("/bookings/<int:booking_id>")
def get_booking(booking_id: int):
    booking = ledger.get_booking(booking_id)
    return jsonify(serialize_booking(booking, full=is_owner())), 200


# ---------- CUSTOMERS: cancel booking ----------
@booking_bp.post("/bookings/<int:booking_id>/cancel")
def cancel_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    booking, actor = _load_for_customer(booking_id, data)
    if not booking:
        return jsonify(error="Booking not found"), 404

    reason = (data.get("reason") or "").strip()
    default_note = "Cancelled by owner" if actor == "owner" else "Cancelled by customer"
    booking, changed = ledger.cancel(booking, reason or default_note, utcnow())

    if changed:
        log_event("BOOKING_CANCEL", actor=actor, entity="booking", entity_id=booking.id, metadata={"reason": reason})
        ok, err = notifications.send_booking_cancelled(booking)
        if not ok:
            current_app.logger.warning("Cancellation email for booking %s not sent: %s", booking.id, err)
        return jsonify(message="Cancelled", booking=serialize_booking(booking, full=False)), 200

    return jsonify(message="Already cancelled", booking=serialize_booking(booking, full=False)), 200


# ---------- CUSTOMERS: reschedule ----------
@booking_bp.post("/bookings/<int:booking_id>/reschedule")
def reschedule_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    booking, actor = _load_for_customer(booking_id, data)
    if not booking:
        return jsonify(error="Booking not found"), 404

    now = utcnow()
    new_date, new_time = validate_slot(data.get("event_date"), data.get("event_time"), now)
    old = {"event_date": booking.event_date, "event_time": booking.event_time}
    booking = ledger.reschedule(booking, new_date, new_time, now)

    log_event("BOOKING_RESCHEDULE", actor=actor, entity="booking", entity_id=booking.id,
              metadata={"from": old, "to": {"event_date": new_date, "event_time": new_time}})
    return jsonify(serialize_booking(booking, full=False)), 200


# ---------- CHAT ASSISTANT: find a customer's booking ----------
@booking_bp.post("/bookings/lookup")
def lookup_booking():
    data = request.get_json(silent=True) or {}
    booking_id = data.get("booking_id")
    phone = data.get("phone")
    name = data.get("name")
    if booking_id in (None, "") and not phone:
        return jsonify(error="booking_id or phone is required"), 400

    res = resolve_identity(booking_id=booking_id, phone=phone, name=name)
    out = {
        "status": res.status,
        "matched_by": res.matched_by,
        "tie_break": res.tie_break,
        "booking": None,
        "candidates": [
            {"id": b.id, "customer_name": b.customer_name, "event_date": b.event_date,
             "event_time": b.event_time, "status": b.status}
            for b in res.candidates
        ],
    }
    if res.booking:
        out["booking"] = serialize_booking(res.booking, full=False)
        out["booking"]["customer_name"] = res.booking.customer_name
    return jsonify(out), 200


# ---------- OWNER: list all bookings ----------
@booking_bp.get("/bookings")
@require_owner
def list_all_bookings():
    status = request.args.get("status")
    if status and status not in BOOKING_STATUSES:
        return jsonify(error="Invalid status value"), 400

    rows = ledger.list_bookings(status=status)
    return jsonify([serialize_booking(b) for b in rows]), 200


# ---------- OWNER: move a booking along the board ----------
@booking_bp.patch("/bookings/<int:booking_id>/status")
@require_owner
def update_booking_status(booking_id: int):
    data = request.get_json(silent=True) or {}
    status = data.get("status")
    booking = ledger.get_booking(booking_id)
    now = utcnow()

    if status == "completed":
        booking = ledger.complete(booking, now)
    elif status == "cancelled":
        booking, changed = ledger.cancel(booking, (data.get("reason") or "").strip() or "Cancelled by owner", now)
        if changed:
            ok, err = notifications.send_booking_cancelled(booking)
            if not ok:
                current_app.logger.warning("Cancellation email for booking %s not sent: %s", booking.id, err)
    elif status in BOOKING_STATUSES:
        return jsonify(error=f"Status {status} is set by payment, not by hand"), 400
    else:
        return jsonify(error="Invalid status value"), 400

    log_event("BOOKING_STATUS_UPDATE", actor="owner", entity="booking", entity_id=booking.id,
              metadata={"status": status})
    return jsonify(serialize_booking(booking)), 200
