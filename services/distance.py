import httpx
from flask import current_app

from services.errors import ServiceUnavailable

DISTANCE_MATRIX_URL = "https://maps.googleapis.com/maps/api/distancematrix/json"
METERS_PER_MILE = 1609.344


def driving_distance_miles(origin: str, destination: str) -> float:
    api_key = current_app.config.get("GOOGLE_MAPS_API_KEY")
    if not api_key or not origin:
        raise ServiceUnavailable("Distance lookup is not configured")

    params = {
        "origins": origin,
        "destinations": destination,
        "units": "imperial",
        "key": api_key,
    }
    timeout = current_app.config.get("DISTANCE_TIMEOUT_SECONDS", 10)
    try:
        with httpx.Client(timeout=timeout) as client:
            resp = client.get(DISTANCE_MATRIX_URL, params=params)
            resp.raise_for_status()
            data = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        current_app.logger.warning("Distance lookup failed: %s", exc)
        raise ServiceUnavailable("Distance lookup failed, please try again") from exc

    try:
        element = data["rows"][0]["elements"][0]
    except (KeyError, IndexError, TypeError):
        raise ServiceUnavailable("Distance lookup returned no route")

    if element.get("status") != "OK":
        raise ServiceUnavailable("Could not find a route to that address")

    return element["distance"]["value"] / METERS_PER_MILE
