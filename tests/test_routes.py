import hashlib
import hmac
import io
import json
import time

import pytest

from models.calendar_subscriber import CalendarSubscriber
from services import ledger
from services.card_gateway import CheckoutStatus
from services.errors import ServiceUnavailable
from services.evidence_scorer import EvidenceScore
from tests.conftest import NOW, booking_payload, reload


def create(client, **overrides):
    resp = client.post("/bookings", json=booking_payload(**overrides))
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}
    assert resp.headers["X-Frame-Options"] == "DENY"


# ---------- booking ----------

def test_create_booking(client):
    body = create(client, email="  Dana@Example.com ")

    assert body["status"] == "pending"
    assert body["email"] == "dana@example.com"
    assert body["travel_fee_cents"] == 0
    assert body["pending_expires_at"] == "2025-05-04T12:00:00"


@pytest.mark.parametrize("overrides, message", [
    ({"email": ""}, "email is required"),
    ({"email": "not-an-email"}, "Invalid email address"),
    ({"postal_code": "7870"}, "Postal code must be 5 digits"),
    ({"party_size": 0}, "party_size must be between 1 and 100"),
    ({"party_size": "lots"}, "party_size must be a number"),
    ({"package_type": "mega-foam"}, "Unknown package"),
    ({"event_time": "3:00 PM"}, "Invalid time slot"),
    ({"event_date": "next week"}, "Invalid event date"),
    ({"event_date": "2025-05-02"}, "Bookings must be made at least 48 hours in advance"),
])
def test_create_booking_validation(client, overrides, message):
    resp = client.post("/bookings", json=booking_payload(**overrides))
    assert resp.status_code == 400
    assert resp.get_json()["error"] == message


def test_public_view_hides_contact_details(client, owner_headers):
    booking_id = create(client)["id"]

    public = client.get(f"/bookings/{booking_id}").get_json()
    assert "email" not in public
    owner = client.get(f"/bookings/{booking_id}", headers=owner_headers).get_json()
    assert owner["email"] == "dana@example.com"

    assert client.get("/bookings/999").status_code == 404


def test_owner_listing_requires_key(client, owner_headers):
    create(client)
    assert client.get("/bookings").status_code == 401
    assert client.get("/bookings", headers={"X-Owner-Key": "guess"}).status_code == 403

    resp = client.get("/bookings?status=pending", headers=owner_headers)
    assert resp.status_code == 200
    assert len(resp.get_json()) == 1
    assert client.get("/bookings?status=lost", headers=owner_headers).status_code == 400


def test_malformed_owner_key_hash_denies_access(app, client, owner_headers):
    app.config["OWNER_KEY_HASH"] = "not-a-bcrypt-hash"
    assert client.get("/bookings", headers=owner_headers).status_code == 403


def test_customer_cancel_needs_matching_phone(client, outbox):
    booking_id = create(client)["id"]

    assert client.post(f"/bookings/{booking_id}/cancel", json={"phone": "555-000-0000"}).status_code == 404

    resp = client.post(f"/bookings/{booking_id}/cancel", json={"phone": "5551234567", "reason": "Rain"})
    assert resp.get_json()["message"] == "Cancelled"
    resp = client.post(f"/bookings/{booking_id}/cancel", json={"phone": "5551234567"})
    assert resp.get_json()["message"] == "Already cancelled"

    assert reload(booking_id).cancel_note == "Rain"
    assert len(outbox.to("dana@example.com")) == 1


def test_reschedule(client):
    booking_id = create(client)["id"]

    resp = client.post(f"/bookings/{booking_id}/reschedule",
                       json={"phone": "555-123-4567", "event_date": "June 3, 2025", "event_time": "6:00 PM"})

    assert resp.status_code == 200
    assert resp.get_json()["event_date"] == "2025-06-03"
    assert "Rescheduled from 2025-06-01 2:00 PM" in reload(booking_id).notes


def test_lookup(client):
    booking_id = create(client)["id"]

    assert client.post("/bookings/lookup", json={"name": "Dana"}).status_code == 400

    body = client.post("/bookings/lookup", json={"phone": "555 123 4567"}).get_json()
    assert body["status"] == "resolved"
    assert body["booking"]["id"] == booking_id

    assert client.post("/bookings/lookup", json={"phone": "5550000000"}).get_json()["status"] == "not_found"


def test_owner_status_board(client, owner_headers):
    booking_id = create(client)["id"]
    url = f"/bookings/{booking_id}/status"

    assert client.patch(url, json={"status": "confirmed"}, headers=owner_headers).status_code == 400
    assert client.patch(url, json={"status": "done"}, headers=owner_headers).status_code == 400
    assert client.patch(url, json={"status": "completed"}, headers=owner_headers).status_code == 409

    ledger.confirm_payment(booking_id, 32500, NOW)
    resp = client.patch(url, json={"status": "completed"}, headers=owner_headers)
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "completed"


# ---------- availability & travel fee ----------

def test_availability(client):
    booking_id = create(client)["id"]
    day = client.get("/availability?date=2025-06-01").get_json()
    assert day["available"] == day["slots"]

    ledger.confirm_payment(booking_id, 32500, NOW)
    day = client.get("/availability?date=2025-06-01").get_json()
    assert "2:00 PM" not in day["available"]
    assert day["fully_booked"] is False

    assert client.get("/availability?date=someday").status_code == 400
    assert client.get("/availability").status_code == 400


def test_fully_booked_range(client):
    body = client.get("/availability/fully-booked?start=2025-06-01&end=2025-06-30").get_json()
    assert body == {"start": "2025-06-01", "end": "2025-06-30", "dates": []}

    body = client.get("/availability/fully-booked").get_json()
    assert body["start"] == "2025-05-01"
    assert body["end"] == "2025-07-30"

    assert client.get("/availability/fully-booked?start=2025-06-30&end=2025-06-01").status_code == 400
    assert client.get("/availability/fully-booked?start=june").status_code == 400


def test_travel_fee_disabled_quotes_zero(client):
    resp = client.post("/travel-fee/quote", json={"address": "1 Far Road", "postal_code": "73301"})
    assert resp.get_json() == {"distance_miles": None, "fee_cents": 0}


def test_travel_fee_added_to_expected_amount(app, client, monkeypatch):
    app.config["TRAVEL_FEE_ENABLED"] = True
    app.config["BUSINESS_ADDRESS"] = "Foam HQ"
    monkeypatch.setattr("services.distance.driving_distance_miles", lambda origin, dest: 30.0)

    quote = client.post("/travel-fee/quote", json={"address": "1 Far Road", "postal_code": "73301"}).get_json()
    assert quote == {"distance_miles": 30.0, "fee_cents": 2000}

    booking_id = create(client)["id"]
    body = client.post(f"/p2p/{booking_id}/select").get_json()
    assert body["expected_amount_cents"] == 32500 + 2000


def test_distance_lookup_failure_is_503(app, client, monkeypatch):
    app.config["TRAVEL_FEE_ENABLED"] = True

    def broken(origin, dest):
        raise ServiceUnavailable("Distance lookup failed, please try again")

    monkeypatch.setattr("services.distance.driving_distance_miles", broken)
    resp = client.post("/bookings", json=booking_payload())
    assert resp.status_code == 503
    assert ledger.list_bookings() == []


# ---------- peer-to-peer ----------

def upload(client, booking_id, filename="venmo.png"):
    return client.post(
        f"/p2p/{booking_id}/evidence",
        data={"receipt": (io.BytesIO(b"\x89PNG receipt"), filename)},
        content_type="multipart/form-data",
    )


def test_p2p_auto_confirm(client, scorer):
    booking_id = create(client)["id"]
    select = client.post(f"/p2p/{booking_id}/select").get_json()
    assert select == {"booking_id": booking_id, "expected_amount_cents": 32500, "payee": "@FoamWorks"}

    scorer.result = EvidenceScore(True, True, 32500, "high", "You paid $325.00")
    resp = upload(client, booking_id)

    body = resp.get_json()
    assert resp.status_code == 200
    assert body["outcome"] == "confirmed"
    assert body["booking"]["status"] == "confirmed"
    assert body["booking"]["confirmation_number"] == f"FW-{booking_id:06d}"


def test_p2p_upload_errors(client, scorer):
    booking_id = create(client)["id"]
    client.post(f"/p2p/{booking_id}/select")

    resp = client.post(f"/p2p/{booking_id}/evidence", data={}, content_type="multipart/form-data")
    assert resp.status_code == 400

    scorer.result = EvidenceScore(False, False, None, "low", "")
    assert upload(client, booking_id).status_code == 422

    scorer.result = ServiceUnavailable("Receipt verification is unavailable, please try again")
    assert upload(client, booking_id).status_code == 503


def test_p2p_manual_review_flow(client, scorer, owner_headers):
    booking_id = create(client)["id"]
    client.post(f"/p2p/{booking_id}/select")
    scorer.result = EvidenceScore(True, True, 32500, "medium", "You paid $325.00")

    assert upload(client, booking_id).get_json()["outcome"] == "manual_review"

    assert client.get("/p2p/pending").status_code == 401
    queue = client.get("/p2p/pending", headers=owner_headers).get_json()
    assert [b["id"] for b in queue] == [booking_id]

    evidence = client.get(f"/p2p/{booking_id}/evidence", headers=owner_headers)
    assert evidence.status_code == 200
    assert evidence.data == b"\x89PNG receipt"

    resp = client.post("/p2p/verify", headers=owner_headers,
                       json={"booking_id": booking_id, "verified": True, "received_amount": "325.00"})
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "confirmed"
    assert resp.get_json()["amount_paid_cents"] == 32500
    assert client.get("/p2p/pending", headers=owner_headers).get_json() == []


def test_p2p_verify_input_checks(client, owner_headers):
    booking_id = create(client)["id"]
    url = "/p2p/verify"

    assert client.post(url, headers=owner_headers, json={"booking_id": booking_id}).status_code == 400
    resp = client.post(url, headers=owner_headers,
                       json={"booking_id": booking_id, "verified": True, "received_amount_cents": -5})
    assert resp.status_code == 400
    resp = client.post(url, headers=owner_headers, json={"booking_id": 999, "verified": False})
    assert resp.status_code == 404
    for bad in ("NaN", "Infinity", "1e999999", "lots"):
        resp = client.post(url, headers=owner_headers,
                           json={"booking_id": booking_id, "verified": True, "received_amount": bad})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid received amount"
    assert reload(booking_id).status == "pending"


# ---------- card ----------

def test_card_checkout_and_verify(client, monkeypatch):
    booking_id = create(client)["id"]
    state = {"paid": False}
    monkeypatch.setattr("services.card_gateway.create_checkout",
                        lambda booking: ("cs_test_1", "https://checkout.stripe.test/cs_test_1"))
    monkeypatch.setattr("services.card_gateway.retrieve_checkout",
                        lambda session_id: CheckoutStatus(session_id, state["paid"], 32500, booking_id))

    resp = client.post("/payments/checkout", json={"booking_id": booking_id})
    assert resp.get_json() == {"checkout_url": "https://checkout.stripe.test/cs_test_1",
                               "expected_amount_cents": 32500}

    resp = client.post("/payments/verify", json={"booking_id": booking_id, "session_id": "cs_test_1"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Payment not completed"

    state["paid"] = True
    resp = client.post("/payments/verify", json={"booking_id": booking_id, "session_id": "cs_test_1"})
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "confirmed"

    resp = client.post("/payments/verify", json={"booking_id": booking_id, "session_id": "cs_test_1"})
    assert resp.status_code == 409


def test_card_checkout_without_stripe_config_is_503(client):
    booking_id = create(client)["id"]
    resp = client.post("/payments/checkout", json={"booking_id": booking_id})
    assert resp.status_code == 503


def sign(payload: bytes, secret="whsec_test") -> str:
    ts = int(time.time())
    signed = f"{ts}.".encode() + payload
    return f"t={ts},v1={hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()}"


def post_webhook(client, event, signature=None):
    payload = json.dumps(event).encode()
    return client.post("/webhooks/stripe", data=payload, content_type="application/json",
                       headers={"Stripe-Signature": signature or sign(payload)})


def checkout_completed(booking_id, payment_status="paid"):
    return {
        "id": "evt_1",
        "object": "event",
        "type": "checkout.session.completed",
        "data": {"object": {
            "id": "cs_test_1",
            "object": "checkout.session",
            "payment_status": payment_status,
            "amount_total": 32500,
            "metadata": {"booking_id": str(booking_id)},
        }},
    }


def test_webhook_confirms_once(client):
    booking_id = create(client)["id"]

    body = post_webhook(client, checkout_completed(booking_id)).get_json()
    assert body == {"received": True, "applied": True}
    assert reload(booking_id).status == "confirmed"

    resp = post_webhook(client, checkout_completed(booking_id))
    assert resp.status_code == 200
    assert resp.get_json()["applied"] is False
    assert resp.get_json()["reason"] == "Booking already paid"
    assert reload(booking_id).amount_paid_cents == 32500


def test_webhook_unpaid_session_is_acknowledged(client):
    booking_id = create(client)["id"]
    body = post_webhook(client, checkout_completed(booking_id, payment_status="unpaid")).get_json()
    assert body["applied"] is False
    assert reload(booking_id).status == "pending"


def test_webhook_rejects_bad_signature(client):
    resp = post_webhook(client, checkout_completed(1), signature="t=1,v1=deadbeef")
    assert resp.status_code == 400


def test_webhook_ignores_other_events(client):
    resp = post_webhook(client, {"id": "evt_2", "object": "event", "type": "payment_intent.created",
                                 "data": {"object": {}}})
    assert resp.get_json() == {"received": True}


# ---------- calendar subscriptions ----------

def test_calendar_subscription_lifecycle(client):
    assert client.post("/calendar-subscriptions", json={"email": "nope"}).status_code == 400
    assert client.post("/calendar-subscriptions", json={"email": "Fan@Example.com"}).status_code == 201
    resp = client.post("/calendar-subscriptions", json={"email": "fan@example.com"})
    assert resp.get_json()["message"] == "Already subscribed"

    sub = CalendarSubscriber.query.filter_by(email="fan@example.com").one()
    token = sub.unsubscribe_token
    assert client.get(f"/calendar-subscriptions/unsubscribe?token={token}").status_code == 200
    assert client.get("/calendar-subscriptions/unsubscribe?token=bogus").status_code == 404
    assert CalendarSubscriber.query.filter_by(email="fan@example.com").one().is_active is False

    assert client.post("/calendar-subscriptions", json={"email": "fan@example.com"}).status_code == 201
    sub = CalendarSubscriber.query.filter_by(email="fan@example.com").one()
    assert sub.is_active is True
    assert sub.unsubscribe_token != token
