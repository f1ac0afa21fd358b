import re
from dataclasses import dataclass
from datetime import datetime, timedelta

from flask import current_app

from services.errors import ValidationError
from services.event_time import parse_event_date, parse_event_datetime

POSTAL_CODE_RE = re.compile(r"^\d{5}$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_phone(value: str) -> str:
    """Trailing 10 digits, so "+1 (555) 123-4567" and "5551234567" match."""
    digits = re.sub(r"\D", "", value or "")
    return digits[-10:]


def normalize_email(value: str) -> str:
    return (value or "").strip().lower()


@dataclass
class BookingDraft:
    customer_name: str
    email: str
    phone: str
    phone_normalized: str
    address: str
    postal_code: str
    party_size: int
    package_type: str
    event_date: str
    event_time: str
    notes: str | None


def _required(data: dict, key: str) -> str:
    value = data.get(key)
    value = value.strip() if isinstance(value, str) else ""
    if not value:
        raise ValidationError(f"{key} is required")
    return value


def package_price_cents(package_type: str) -> int:
    package = current_app.config["PACKAGES"].get(package_type)
    if not package:
        raise ValidationError("Unknown package")
    return package["price_cents"]


def package_name(package_type: str) -> str:
    package = current_app.config["PACKAGES"].get(package_type)
    return package["name"] if package else package_type


def validate_slot(event_date: str, event_time: str, now: datetime):
    """
    Normalize the date to YYYY-MM-DD and check the slot label and the
    minimum lead time. Returns (iso_date, event_time).
    """
    day = parse_event_date(event_date)
    if day is None:
        raise ValidationError("Invalid event date")

    event_time = (event_time or "").strip()
    if event_time not in current_app.config["DAILY_TIME_SLOTS"]:
        raise ValidationError("Invalid time slot")

    iso_date = day.isoformat()
    starts_at = parse_event_datetime(iso_date, event_time, current_app.config["EVENT_TIMEZONE"])
    if starts_at is None:
        raise ValidationError("Invalid event date or time")

    lead_hours = current_app.config["MIN_LEAD_HOURS"]
    if starts_at - now < timedelta(hours=lead_hours):
        raise ValidationError(f"Bookings must be made at least {lead_hours} hours in advance")

    return iso_date, event_time


def validate_booking_input(data: dict, now: datetime) -> BookingDraft:
    customer_name = _required(data, "customer_name")
    email = normalize_email(_required(data, "email"))
    phone = _required(data, "phone")
    address = _required(data, "address")
    postal_code = _required(data, "postal_code")
    package_type = _required(data, "package_type")

    if not EMAIL_RE.match(email):
        raise ValidationError("Invalid email address")

    phone_normalized = normalize_phone(phone)
    if len(phone_normalized) != 10:
        raise ValidationError("Invalid phone number")

    if not POSTAL_CODE_RE.match(postal_code):
        raise ValidationError("Postal code must be 5 digits")

    try:
        party_size = int(data.get("party_size"))
    except (TypeError, ValueError):
        raise ValidationError("party_size must be a number")
    max_party = current_app.config["MAX_PARTY_SIZE"]
    if party_size < 1 or party_size > max_party:
        raise ValidationError(f"party_size must be between 1 and {max_party}")

    package_price_cents(package_type)

    iso_date, event_time = validate_slot(data.get("event_date"), data.get("event_time"), now)

    notes = data.get("notes")
    notes = (notes.strip() or None) if isinstance(notes, str) else None

    return BookingDraft(
        customer_name=customer_name,
        email=email,
        phone=phone,
        phone_normalized=phone_normalized,
        address=address,
        postal_code=postal_code,
        party_size=party_size,
        package_type=package_type,
        event_date=iso_date,
        event_time=event_time,
        notes=notes,
    )
