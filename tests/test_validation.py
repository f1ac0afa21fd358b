from datetime import date, datetime

import pytest

from services.errors import ServiceUnavailable, ValidationError
from services.event_time import parse_event_date, parse_event_datetime
from services.evidence_scorer import dollars_to_cents, parse_score, score_evidence
from services.travel_fee import quote_for_address, travel_fee_cents
from services.validation import normalize_phone, validate_booking_input, validate_slot
from tests.conftest import NOW, booking_payload


@pytest.mark.parametrize("text, expected", [
    ("2025-06-01", date(2025, 6, 1)),
    ("January 15, 2025", date(2025, 1, 15)),
    ("June 1 2025", date(2025, 6, 1)),
    ("not a date", None),
    ("", None),
    (None, None),
])
def test_parse_event_date(text, expected):
    assert parse_event_date(text) == expected


def test_parse_event_datetime_converts_to_utc():
    assert parse_event_datetime("2025-06-01", "2:00 PM") == datetime(2025, 6, 1, 14, 0)
    # CDT is UTC-5
    assert parse_event_datetime("2025-06-01", "2:00 PM", "America/Chicago") == datetime(2025, 6, 1, 19, 0)
    # CST is UTC-6
    assert parse_event_datetime("January 15, 2025", "10:00 AM", "America/Chicago") == datetime(2025, 1, 15, 16, 0)


def test_parse_event_datetime_bad_input():
    assert parse_event_datetime("2025-06-01", "whenever") is None
    assert parse_event_datetime("2025-06-01", "") is None
    assert parse_event_datetime("2025-06-01", "2:00 PM", "Mars/Olympus") is None


def test_normalize_phone():
    assert normalize_phone("+1 (555) 123-4567") == "5551234567"
    assert normalize_phone("555.123.4567") == "5551234567"
    assert normalize_phone(None) == ""


def test_lead_time_boundary(app):
    # NOW is 2025-05-01 12:00; noon two days later is exactly 48 hours out
    assert validate_slot("2025-05-03", "12:00 PM", NOW) == ("2025-05-03", "12:00 PM")
    with pytest.raises(ValidationError, match="48 hours"):
        validate_slot("2025-05-03", "10:00 AM", NOW)


def test_validate_booking_input_normalizes(app):
    draft = validate_booking_input(booking_payload(
        email=" Dana@Example.COM ", event_date="June 1, 2025", notes="  gate code 1234  ",
        party_size="25",
    ), NOW)

    assert draft.email == "dana@example.com"
    assert draft.phone_normalized == "5551234567"
    assert draft.event_date == "2025-06-01"
    assert draft.party_size == 25
    assert draft.notes == "gate code 1234"


def test_party_size_limit(app):
    with pytest.raises(ValidationError):
        validate_booking_input(booking_payload(party_size=101), NOW)
    assert validate_booking_input(booking_payload(party_size=100), NOW).party_size == 100


# ---------- travel fee ----------

@pytest.mark.parametrize("miles, fee", [
    (0, 0),
    (20, 0),
    (25.5, 1100),
    (20.004, 1),
    (45, 5000),
])
def test_travel_fee_cents(miles, fee):
    assert travel_fee_cents(miles, 20, 200) == fee


def test_travel_fee_rejects_negative_distance():
    with pytest.raises(ValueError):
        travel_fee_cents(-1, 20, 200)


def test_quote_for_address(app):
    assert quote_for_address("1 Main St 78701").fee_cents == 0
    with pytest.raises(ValidationError):
        quote_for_address("   ")

    app.config["TRAVEL_FEE_ENABLED"] = True
    app.config["GOOGLE_MAPS_API_KEY"] = None
    with pytest.raises(ServiceUnavailable):
        quote_for_address("1 Main St 78701")


# ---------- evidence scoring ----------

def test_parse_score():
    score = parse_score(
        '{"isAuthentic": true, "recipientMatches": true, "amount": "$1,325.50",'
        ' "confidence": "HIGH", "rawText": "You paid Foam Works"}'
    )
    assert score.is_authentic is True
    assert score.recipient_matches is True
    assert score.amount_cents == 132550
    assert score.confidence == "high"


def test_parse_score_is_strict_about_flags():
    score = parse_score('{"isAuthentic": "true", "amount": null, "confidence": "certain"}')
    assert score.is_authentic is False
    assert score.recipient_matches is False
    assert score.amount_cents is None
    assert score.confidence == "low"


@pytest.mark.parametrize("value, cents", [
    (325, 32500),
    ("325.00", 32500),
    ("$12.34", 1234),
    ("-5", None),
    ("NaN", None),
    ("Infinity", None),
    ("-Infinity", None),
    ("1e999999", None),
    ("abc", None),
    ("", None),
])
def test_dollars_to_cents(value, cents):
    assert dollars_to_cents(value) == cents


def test_score_evidence_requires_api_key(app):
    with pytest.raises(ServiceUnavailable):
        score_evidence(b"img")


def test_parse_score_non_finite_amount_means_no_amount():
    score = parse_score('{"isAuthentic": true, "recipientMatches": true, "amount": NaN, "confidence": "high"}')
    assert score.amount_cents is None
    score = parse_score('{"isAuthentic": true, "recipientMatches": true, "amount": Infinity, "confidence": "high"}')
    assert score.amount_cents is None
