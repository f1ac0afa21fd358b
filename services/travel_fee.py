import math
from dataclasses import dataclass

from flask import current_app

from services import distance
from services.errors import ValidationError


@dataclass
class TravelQuote:
    distance_miles: float | None
    fee_cents: int


def travel_fee_cents(distance_miles: float, free_miles: float, rate_cents_per_mile: int) -> int:
    """Fee for the miles beyond the free allowance, rounded up to whole cents."""
    if distance_miles is None or distance_miles < 0:
        raise ValueError("distance_miles must be a non-negative number")
    billable = max(0.0, distance_miles - free_miles)
    return int(math.ceil(round(billable * rate_cents_per_mile, 6)))


def quote_for_address(address: str) -> TravelQuote:
    address = (address or "").strip()
    if not address:
        raise ValidationError("address is required")

    cfg = current_app.config
    if not cfg.get("TRAVEL_FEE_ENABLED"):
        return TravelQuote(distance_miles=None, fee_cents=0)

    miles = distance.driving_distance_miles(cfg["BUSINESS_ADDRESS"], address)
    fee = travel_fee_cents(miles, cfg["TRAVEL_FREE_MILES"], cfg["TRAVEL_RATE_CENTS_PER_MILE"])
    return TravelQuote(distance_miles=round(miles, 1), fee_cents=fee)
