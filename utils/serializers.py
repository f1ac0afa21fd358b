def _iso(dt):
    return dt.isoformat() if dt else None


def serialize_booking(b, full=True):
    """Customer-safe fields always; contact and review details only when full."""
    out = {
        "id": b.id,
        "status": b.status,
        "package_type": b.package_type,
        "event_date": b.event_date,
        "event_time": b.event_time,
        "party_size": b.party_size,
        "payment_method": b.payment_method,
        "expected_amount_cents": b.expected_amount_cents,
        "amount_paid_cents": b.amount_paid_cents,
        "travel_fee_cents": b.travel_fee_cents,
        "travel_distance_miles": b.travel_distance_miles,
        "payment_verified": b.payment_verified,
        "confirmation_number": b.confirmation_number,
        "pending_expires_at": _iso(b.pending_expires_at) if b.status == "pending" else None,
        "created_at": _iso(b.created_at),
    }
    if not full:
        return out

    out.update({
        "customer_name": b.customer_name,
        "email": b.email,
        "phone": b.phone,
        "address": b.address,
        "postal_code": b.postal_code,
        "notes": b.notes,
        "received_amount_cents": b.received_amount_cents,
        "stripe_session_id": b.stripe_session_id,
        "evidence_ref": b.evidence_ref,
        "evidence_confidence": b.evidence_confidence,
        "needs_manual_review": b.needs_manual_review,
        "payment_verified_at": _iso(b.payment_verified_at),
        "verification_notes": b.verification_notes,
        "confirmed_at": _iso(b.confirmed_at),
        "completed_at": _iso(b.completed_at),
        "reminder_sent_at": _iso(b.reminder_sent_at),
        "cancelled_at": _iso(b.cancelled_at),
        "cancel_note": b.cancel_note,
    })
    return out
