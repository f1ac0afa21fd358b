from dataclasses import dataclass, field

from models import db
from models.booking import Booking
from services.validation import normalize_phone

RESOLVED = "resolved"
AMBIGUOUS = "ambiguous"
NOT_FOUND = "not_found"


@dataclass
class Resolution:
    status: str
    booking: Booking | None = None
    candidates: list = field(default_factory=list)
    matched_by: str | None = None  # booking_id, phone, phone_name
    tie_break: bool = False


def _most_recent(bookings):
    return max(bookings, key=lambda b: (b.created_at, b.id))


def resolve_identity(booking_id=None, phone=None, name=None) -> Resolution:
    """
    Booking number first, then phone (trailing 10 digits), then phone plus a
    case-insensitive name substring. When the name leaves more than one match,
    or none of the phone matches, the most recently created booking wins.
    """
    if booking_id not in (None, ""):
        try:
            booking = db.session.get(Booking, int(booking_id))
        except (TypeError, ValueError):
            booking = None
        if booking:
            return Resolution(RESOLVED, booking=booking, candidates=[booking], matched_by="booking_id")

    digits = normalize_phone(phone) if phone else ""
    if len(digits) != 10:
        return Resolution(NOT_FOUND)

    matches = Booking.query.filter_by(phone_normalized=digits).order_by(Booking.created_at.desc()).all()
    if not matches:
        return Resolution(NOT_FOUND)
    if len(matches) == 1:
        return Resolution(RESOLVED, booking=matches[0], candidates=matches, matched_by="phone")

    needle = (name or "").strip().lower()
    if not needle:
        return Resolution(AMBIGUOUS, candidates=matches, matched_by="phone")

    named = [b for b in matches if needle in (b.customer_name or "").lower()]
    if len(named) == 1:
        return Resolution(RESOLVED, booking=named[0], candidates=named, matched_by="phone_name")

    pool = named or matches
    return Resolution(RESOLVED, booking=_most_recent(pool), candidates=pool, matched_by="phone_name", tie_break=True)
