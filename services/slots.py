from datetime import date, timedelta

from flask import current_app
from sqlalchemy import or_

from models.booking import Booking, HOLDING_STATUSES

MAX_RANGE_DAYS = 366


def slot_catalog() -> list:
    return list(current_app.config["DAILY_TIME_SLOTS"])


def free_slots(catalog, held) -> list:
    """Catalog order is preserved; anything in ``held`` is dropped."""
    held = set(held)
    return [slot for slot in catalog if slot not in held]


def held_slots(event_date: str, exclude_booking_id=None) -> set:
    q = Booking.query.filter(
        Booking.event_date == event_date,
        Booking.status.in_(HOLDING_STATUSES),
    )
    if exclude_booking_id is not None:
        q = q.filter(Booking.id != exclude_booking_id)
    return {b.event_time for b in q.all()}


def available_slots(event_date: str) -> list:
    return free_slots(slot_catalog(), held_slots(event_date))


def is_slot_held(event_date: str, event_time: str, exclude_booking_id=None) -> bool:
    return event_time in held_slots(event_date, exclude_booking_id=exclude_booking_id)


def has_duplicate_pending_hold(event_date: str, event_time: str, phone_normalized: str, email: str,
                               exclude_booking_id=None) -> bool:
    """A second pending hold on the exact slot by the same customer."""
    q = Booking.query.filter(
        Booking.event_date == event_date,
        Booking.event_time == event_time,
        Booking.status == "pending",
        or_(Booking.phone_normalized == phone_normalized, Booking.email == email),
    )
    if exclude_booking_id is not None:
        q = q.filter(Booking.id != exclude_booking_id)
    return q.first() is not None


def fully_booked_dates(start: date, end: date) -> list:
    """ISO dates in [start, end] where every catalog slot is held."""
    if end < start:
        return []
    end = min(end, start + timedelta(days=MAX_RANGE_DAYS))

    catalog = set(slot_catalog())
    rows = (
        Booking.query
        .filter(
            Booking.event_date >= start.isoformat(),
            Booking.event_date <= end.isoformat(),
            Booking.status.in_(HOLDING_STATUSES),
        )
        .all()
    )

    held_by_date = {}
    for b in rows:
        held_by_date.setdefault(b.event_date, set()).add(b.event_time)

    return sorted(
        d for d, held in held_by_date.items()
        if catalog and catalog.issubset(held)
    )
