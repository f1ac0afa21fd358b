"""
Payment reconciliation for both rails.

Card payments are confirmed only from Stripe's own answer about a checkout
session. Peer-to-peer receipts go through the evidence scorer: an
authenticity/recipient gate, amount extraction, then auto-confirm inside a
one-dollar tolerance at high confidence, otherwise manual owner review.
"""

import os
import uuid

from flask import current_app
from werkzeug.utils import secure_filename

from models import db
from services import card_gateway, evidence_scorer, ledger, slots
from services.errors import (
    ConflictError,
    EvidenceRejected,
    PaymentNotCompleted,
    ValidationError,
)

ALLOWED_EVIDENCE_EXTENSIONS = {"png", "jpg", "jpeg", "webp", "heic"}


# ---------- card rail ----------

def start_card_checkout(booking):
    """Choose the card rail and open a hosted checkout session."""
    ledger.choose_rail(booking, "card")
    if slots.is_slot_held(booking.event_date, booking.event_time, exclude_booking_id=booking.id):
        raise ConflictError("That time slot is no longer available")

    session_id, url = card_gateway.create_checkout(booking)
    booking.stripe_session_id = session_id
    db.session.commit()
    return url


def confirm_card_payment(booking_id, status, now):
    """Confirm from an authoritative checkout status; never decides "paid" itself."""
    booking = ledger.get_booking(booking_id)
    if status.booking_id is not None and status.booking_id != booking.id:
        raise ValidationError("Checkout session does not belong to this booking")
    if booking.payment_method not in (None, "card"):
        raise ConflictError("Booking uses a different payment method")
    if booking.amount_paid_cents is not None:
        raise ConflictError("Booking already paid")
    if not status.paid:
        raise PaymentNotCompleted("Payment not completed")

    if booking.payment_method is None:
        ledger.choose_rail(booking, "card")
    if booking.stripe_session_id != status.session_id:
        booking.stripe_session_id = status.session_id

    return ledger.confirm_payment(booking.id, status.amount_cents, now, verified=True)


def verify_card_payment(booking_id, session_id, now):
    if not session_id:
        raise ValidationError("session_id is required")
    status = card_gateway.retrieve_checkout(session_id)
    return confirm_card_payment(booking_id, status, now)


# ---------- peer-to-peer rail ----------

def select_peer_to_peer(booking):
    ledger.choose_rail(booking, "peer_to_peer")
    return {
        "booking_id": booking.id,
        "expected_amount_cents": booking.expected_amount_cents,
        "payee": current_app.config["P2P_PAYEE_HANDLE"],
    }


def _evidence_extension(filename: str) -> str:
    name = secure_filename(filename or "")
    ext = name.rsplit(".", 1)[-1].lower() if "." in name else ""
    if ext not in ALLOWED_EVIDENCE_EXTENSIONS:
        raise ValidationError("Receipt must be an image (png, jpg, webp, heic)")
    return ext


def _store_evidence(booking_id: int, image_bytes: bytes, ext: str) -> str:
    folder = current_app.config["UPLOAD_FOLDER"]
    os.makedirs(folder, exist_ok=True)
    name = f"booking-{booking_id}-{uuid.uuid4().hex[:12]}.{ext}"
    with open(os.path.join(folder, name), "wb") as fh:
        fh.write(image_bytes)
    return name


def _discard_evidence(evidence_ref):
    """Remove a receipt that newer evidence has replaced."""
    if not evidence_ref:
        return
    path = os.path.join(current_app.config["UPLOAD_FOLDER"], evidence_ref)
    try:
        os.remove(path)
    except FileNotFoundError:
        current_app.logger.warning("Replaced receipt %s was already gone", evidence_ref)


def decide(expected_cents: int, score, tolerance_cents: int) -> str:
    """One of "confirm", "review_no_amount", "review"."""
    if score.amount_cents is None:
        return "review_no_amount"
    delta = abs(score.amount_cents - (expected_cents or 0))
    if delta <= tolerance_cents and score.confidence == "high":
        return "confirm"
    return "review"


def submit_evidence(booking_id, image_bytes: bytes, filename: str, now, mime_type: str = "image/jpeg"):
    """
    Returns (booking, outcome) where outcome is "confirmed" or "manual_review".
    Raises EvidenceRejected for receipts that fail the authenticity gate;
    those are never stored.
    """
    booking = ledger.get_booking(booking_id)
    if booking.payment_verified:
        raise ConflictError("Payment already verified")
    if booking.status != "pending":
        raise ConflictError(f"Booking is {booking.status}, not pending")
    if booking.payment_method != "peer_to_peer":
        raise ConflictError("Booking is not set up for peer-to-peer payment")
    if not image_bytes:
        raise ValidationError("Receipt image is required")
    ext = _evidence_extension(filename)

    score = evidence_scorer.score_evidence(image_bytes, mime_type=mime_type)

    if not score.is_authentic:
        raise EvidenceRejected("That doesn't look like a Venmo payment screenshot. Please upload the receipt again.")
    if not score.recipient_matches:
        raise EvidenceRejected(
            f"The payment doesn't appear to be sent to {current_app.config['P2P_PAYEE_HANDLE']}. "
            "Please check the recipient and try again."
        )

    previous_ref = booking.evidence_ref
    evidence_ref = _store_evidence(booking.id, image_bytes, ext)
    tolerance = current_app.config["P2P_AMOUNT_TOLERANCE_CENTS"]
    decision = decide(booking.expected_amount_cents, score, tolerance)

    if decision == "review_no_amount":
        notes = f"No amount found on receipt. {score.raw_text}".strip()
        ledger.record_evidence(booking, evidence_ref, 0, score.confidence, notes, needs_review=True)
        _discard_evidence(previous_ref)
        current_app.logger.info("Booking %s receipt has no readable amount; manual review", booking.id)
        return booking, "manual_review"

    notes = (
        f"Receipt amount ${score.amount_cents / 100:.2f} ({score.confidence} confidence), "
        f"expected ${(booking.expected_amount_cents or 0) / 100:.2f}. {score.raw_text}"
    ).strip()
    ledger.record_evidence(booking, evidence_ref, score.amount_cents, score.confidence, notes,
                           needs_review=decision != "confirm")
    _discard_evidence(previous_ref)

    if decision == "confirm":
        try:
            booking = ledger.confirm_payment(booking.id, score.amount_cents, now, verified=True,
                                             notes=f"Auto-verified. {notes}")
        except ConflictError as exc:
            # money arrived but the booking can't be confirmed; the owner sorts it out
            ledger.record_evidence(booking, evidence_ref, score.amount_cents, score.confidence,
                                   f"{notes} Not confirmed: {exc.reason}", needs_review=True)
            raise
        return booking, "confirmed"

    current_app.logger.info("Booking %s receipt needs manual review: %s", booking.id, notes)
    return booking, "manual_review"


def manual_verify(booking_id, approve: bool, amount_cents, now, notes=None):
    """Owner decision; takes precedence over any automated result."""
    booking = ledger.get_booking(booking_id)
    if booking.amount_paid_cents is not None or booking.payment_verified:
        raise ConflictError("Payment already verified")

    if approve:
        if amount_cents is None:
            amount_cents = booking.expected_amount_cents
        if amount_cents is None:
            raise ValidationError("received amount is required")
        if booking.payment_method is None:
            ledger.choose_rail(booking, "peer_to_peer")
        return ledger.confirm_payment(booking.id, amount_cents, now, verified=True,
                                      notes=notes or "Manually verified by owner")

    return ledger.reject_payment(booking, notes or "Payment rejected by owner",
                                 received_amount_cents=amount_cents if amount_cents is not None else 0)
