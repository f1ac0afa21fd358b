from datetime import date, timedelta

from flask import Blueprint, request, jsonify

from services import slots, travel_fee
from services.event_time import parse_event_date
from utils.clock import utcnow

availability_bp = Blueprint("availability", __name__)

DEFAULT_RANGE_DAYS = 90


def _parse_day(value: str):
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


@availability_bp.get("/availability")
def day_availability():
    date_str = request.args.get("date")
    day = parse_event_date(date_str) if date_str else None
    if day is None:
        return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400

    catalog = slots.slot_catalog()
    free = slots.available_slots(day.isoformat())
    return jsonify(
        date=day.isoformat(),
        slots=catalog,
        available=free,
        fully_booked=len(free) == 0,
    ), 200


@availability_bp.get("/availability/fully-booked")
def fully_booked():
    start = _parse_day(request.args.get("start")) if request.args.get("start") else utcnow().date()
    if start is None:
        return jsonify(error="Invalid start date. Use YYYY-MM-DD"), 400

    if request.args.get("end"):
        end = _parse_day(request.args.get("end"))
        if end is None:
            return jsonify(error="Invalid end date. Use YYYY-MM-DD"), 400
    else:
        end = start + timedelta(days=DEFAULT_RANGE_DAYS)

    if end < start:
        return jsonify(error="end must not be before start"), 400

    return jsonify(start=start.isoformat(), end=end.isoformat(), dates=slots.fully_booked_dates(start, end)), 200


@availability_bp.post("/travel-fee/quote")
def quote_travel_fee():
    data = request.get_json(silent=True) or {}
    address = (data.get("address") or "").strip()
    postal_code = (data.get("postal_code") or "").strip()
    quote = travel_fee.quote_for_address(f"{address} {postal_code}".strip())
    return jsonify(distance_miles=quote.distance_miles, fee_cents=quote.fee_cents), 200
