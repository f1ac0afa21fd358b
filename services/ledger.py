"""
Booking ledger: the only code that mutates Booking rows.

State changes that race with other requests or with the scheduler
(confirm, auto-expire, reminder marking) are single conditional UPDATEs
keyed on the current state, so a row that moved on is never overwritten.
"""

from datetime import timedelta

from flask import current_app
from sqlalchemy import and_, exists, or_, update
from sqlalchemy.orm import aliased

from models import db
from models.booking import Booking, HOLDING_STATUSES, PAYMENT_METHODS
from services import notifications, slots
from services.errors import ConflictError, NotFoundError, ValidationError
from services.validation import package_price_cents

AUTO_EXPIRE_NOTE = "Booking was not completed within 3 days"


def confirmation_number_for(booking_id: int) -> str:
    return f"FW-{booking_id:06d}"


def get_booking(booking_id) -> Booking:
    try:
        booking_id = int(booking_id)
    except (TypeError, ValueError):
        raise NotFoundError("Booking not found")
    booking = db.session.get(Booking, booking_id)
    if not booking:
        raise NotFoundError("Booking not found")
    return booking


def list_bookings(status=None, limit=500):
    q = Booking.query
    if status:
        q = q.filter_by(status=status)
    return q.order_by(Booking.created_at.desc()).limit(limit).all()


def create_booking(draft, now, travel_quote=None) -> Booking:
    if slots.is_slot_held(draft.event_date, draft.event_time):
        raise ConflictError("That time slot is no longer available")
    if slots.has_duplicate_pending_hold(draft.event_date, draft.event_time, draft.phone_normalized, draft.email):
        raise ConflictError("You already have a pending booking for that time slot")

    booking = Booking(
        customer_name=draft.customer_name,
        email=draft.email,
        phone=draft.phone,
        phone_normalized=draft.phone_normalized,
        address=draft.address,
        postal_code=draft.postal_code,
        party_size=draft.party_size,
        package_type=draft.package_type,
        event_date=draft.event_date,
        event_time=draft.event_time,
        notes=draft.notes,
        status="pending",
        travel_fee_cents=travel_quote.fee_cents if travel_quote else 0,
        travel_distance_miles=travel_quote.distance_miles if travel_quote else None,
        created_at=now,
        pending_expires_at=now + timedelta(hours=current_app.config["PENDING_EXPIRY_HOURS"]),
    )
    db.session.add(booking)
    db.session.commit()
    current_app.logger.info("Booking %s created for %s %s", booking.id, booking.event_date, booking.event_time)
    return booking


def choose_rail(booking: Booking, rail: str) -> Booking:
    if rail not in PAYMENT_METHODS:
        raise ValidationError("Unknown payment method")
    if booking.status != "pending":
        raise ConflictError("Booking is not awaiting payment")
    if booking.payment_method == rail:
        return booking
    if booking.payment_method is not None:
        raise ConflictError("Payment method already chosen")

    booking.payment_method = rail
    booking.expected_amount_cents = package_price_cents(booking.package_type) + (booking.travel_fee_cents or 0)
    db.session.commit()
    return booking


def confirm_payment(booking_id: int, amount_cents: int, now, verified: bool = False, notes=None) -> Booking:
    """
    pending -> confirmed. Only succeeds while the booking is unpaid and no
    other booking holds its slot; both are checked inside the UPDATE itself.
    """
    booking = get_booking(booking_id)
    if booking.amount_paid_cents is not None:
        raise ConflictError("Booking already paid")
    if booking.status != "pending":
        raise ConflictError(f"Booking is {booking.status}, not pending")
    if amount_cents is None or amount_cents < 0:
        raise ValidationError("Invalid payment amount")

    other = aliased(Booking)
    slot_taken = exists().where(
        other.id != booking.id,
        other.event_date == booking.event_date,
        other.event_time == booking.event_time,
        other.status.in_(HOLDING_STATUSES),
    )

    values = {
        "status": "confirmed",
        "amount_paid_cents": amount_cents,
        "confirmed_at": now,
        "confirmation_number": confirmation_number_for(booking.id),
        "needs_manual_review": False,
    }
    if verified:
        values.update(payment_verified=True, payment_verified_at=now, received_amount_cents=amount_cents)
    if notes is not None:
        values["verification_notes"] = notes

    result = db.session.execute(
        update(Booking)
        .where(
            Booking.id == booking.id,
            Booking.status == "pending",
            Booking.amount_paid_cents.is_(None),
            Booking.event_date == booking.event_date,
            Booking.event_time == booking.event_time,
            ~slot_taken,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    db.session.commit()

    if result.rowcount != 1:
        fresh = get_booking(booking.id)
        if fresh.amount_paid_cents is not None:
            raise ConflictError("Booking already paid")
        if fresh.status != "pending":
            raise ConflictError(f"Booking is {fresh.status}, not pending")
        raise ConflictError("That time slot is no longer available")

    booking = get_booking(booking.id)
    current_app.logger.info("Booking %s confirmed (%s cents)", booking.id, amount_cents)

    ok, err = notifications.send_booking_confirmation(booking)
    if not ok:
        current_app.logger.warning("Confirmation email for booking %s not sent: %s", booking.id, err)
    return booking


def record_evidence(booking: Booking, evidence_ref: str, received_amount_cents, confidence, notes: str,
                    needs_review: bool) -> Booking:
    # newest evidence replaces the previous one
    booking.evidence_ref = evidence_ref
    booking.received_amount_cents = received_amount_cents
    booking.evidence_confidence = confidence
    booking.verification_notes = notes
    booking.needs_manual_review = needs_review
    db.session.commit()
    return booking


def reject_payment(booking: Booking, notes: str, received_amount_cents=None) -> Booking:
    if booking.payment_method != "peer_to_peer":
        raise ConflictError("Only peer-to-peer payments can be rejected")
    if booking.amount_paid_cents is not None:
        raise ConflictError("Booking already paid")
    if booking.status != "pending":
        raise ConflictError(f"Booking is {booking.status}, not pending")

    booking.payment_verified = False
    booking.needs_manual_review = False
    booking.verification_notes = notes
    if received_amount_cents is not None:
        booking.received_amount_cents = received_amount_cents
    db.session.commit()
    return booking


def reschedule(booking: Booking, new_date: str, new_time: str, now) -> Booking:
    if booking.status not in ("pending", "confirmed"):
        raise ConflictError(f"Cannot reschedule a {booking.status} booking")
    if new_date == booking.event_date and new_time == booking.event_time:
        return booking
    if slots.is_slot_held(new_date, new_time, exclude_booking_id=booking.id):
        raise ConflictError("That time slot is no longer available")
    if booking.status == "pending" and slots.has_duplicate_pending_hold(
            new_date, new_time, booking.phone_normalized, booking.email, exclude_booking_id=booking.id):
        raise ConflictError("You already have a pending booking for that time slot")

    line = (
        f"Rescheduled from {booking.event_date} {booking.event_time} "
        f"to {new_date} {new_time} on {now.isoformat(timespec='minutes')}"
    )
    booking.notes = f"{booking.notes}\n{line}" if booking.notes else line
    booking.event_date = new_date
    booking.event_time = new_time
    db.session.commit()
    return booking


def cancel(booking: Booking, note: str, now) -> tuple[Booking, bool]:
    """Returns (booking, changed); cancelling a cancelled booking is a no-op."""
    if booking.status == "cancelled":
        return booking, False
    if booking.status not in ("pending", "confirmed"):
        raise ConflictError(f"Cannot cancel a {booking.status} booking")

    booking.status = "cancelled"
    booking.cancelled_at = now
    booking.cancel_note = (note or "Cancelled")[:255]
    db.session.commit()
    return booking, True


def auto_expire(booking_id: int, now) -> bool:
    result = db.session.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.status == "pending")
        .values(status="cancelled", cancelled_at=now, cancel_note=AUTO_EXPIRE_NOTE)
        .execution_options(synchronize_session=False)
    )
    db.session.commit()
    return result.rowcount == 1


def complete(booking: Booking, now) -> Booking:
    if booking.status != "confirmed":
        raise ConflictError("Only confirmed bookings can be completed")
    booking.status = "completed"
    booking.completed_at = now
    db.session.commit()
    return booking


# ---------- scheduler hooks ----------

def bookings_needing_reminder(now):
    cutoff = now - timedelta(hours=current_app.config["REMINDER_AFTER_HOURS"])
    return (
        Booking.query
        .filter(
            Booking.status == "pending",
            Booking.created_at <= cutoff,
            Booking.reminder_sent_at.is_(None),
        )
        .order_by(Booking.created_at.asc())
        .all()
    )


def mark_reminder_sent(booking_id: int, now) -> bool:
    result = db.session.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.reminder_sent_at.is_(None))
        .values(reminder_sent_at=now)
        .execution_options(synchronize_session=False)
    )
    db.session.commit()
    return result.rowcount == 1


def expired_pending_bookings(now):
    fallback_cutoff = now - timedelta(hours=current_app.config["PENDING_EXPIRY_HOURS"])
    return (
        Booking.query
        .filter(
            Booking.status == "pending",
            or_(
                Booking.pending_expires_at <= now,
                and_(Booking.pending_expires_at.is_(None), Booking.created_at <= fallback_cutoff),
            ),
        )
        .order_by(Booking.created_at.asc())
        .all()
    )


def confirmed_bookings():
    return Booking.query.filter_by(status="confirmed").order_by(Booking.id.asc()).all()


def pending_peer_to_peer_review():
    return (
        Booking.query
        .filter(
            Booking.payment_method == "peer_to_peer",
            Booking.status == "pending",
            Booking.evidence_ref.isnot(None),
            Booking.needs_manual_review.is_(True),
        )
        .order_by(Booking.created_at.asc())
        .all()
    )
