"""Stripe Checkout adapter for the card rail."""

import json
from dataclasses import dataclass

import stripe
from flask import current_app

from services.errors import NotFoundError, ServiceUnavailable
from services.validation import package_name


@dataclass
class CheckoutStatus:
    session_id: str
    paid: bool
    amount_cents: int
    booking_id: int | None


def _configure():
    stripe.api_key = current_app.config.get("STRIPE_SECRET_KEY")
    if not stripe.api_key:
        raise ServiceUnavailable("Card payments are not configured")


def create_checkout(booking) -> tuple[str, str]:
    """Returns (session_id, hosted checkout url)."""
    _configure()
    success_url = current_app.config.get("STRIPE_SUCCESS_URL")
    cancel_url = current_app.config.get("STRIPE_CANCEL_URL")
    if not success_url or not cancel_url:
        raise ServiceUnavailable("Card payments are not configured")

    try:
        session = stripe.checkout.Session.create(
            mode="payment",
            customer_email=booking.email,
            line_items=[{
                "price_data": {
                    "currency": current_app.config.get("STRIPE_CURRENCY", "usd"),
                    "product_data": {"name": f"{package_name(booking.package_type)} - {booking.event_date} {booking.event_time}"},
                    "unit_amount": booking.expected_amount_cents,
                },
                "quantity": 1,
            }],
            success_url=success_url,
            cancel_url=cancel_url,
            metadata={"booking_id": str(booking.id)},
        )
    except stripe.StripeError as exc:
        current_app.logger.error("Stripe checkout create failed for booking %s: %s", booking.id, exc)
        raise ServiceUnavailable("Payment provider unavailable, please try again") from exc

    return session.id, session.url


def _booking_id_from(metadata) -> int | None:
    raw = getattr(metadata, "booking_id", None) if metadata is not None else None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def retrieve_checkout(session_id: str) -> CheckoutStatus:
    _configure()
    try:
        session = stripe.checkout.Session.retrieve(session_id)
    except stripe.InvalidRequestError as exc:
        raise NotFoundError("Checkout session not found") from exc
    except stripe.StripeError as exc:
        current_app.logger.error("Stripe checkout retrieve failed for %s: %s", session_id, exc)
        raise ServiceUnavailable("Payment provider unavailable, please try again") from exc

    return CheckoutStatus(
        session_id=session.id,
        paid=session.payment_status == "paid",
        amount_cents=int(session.amount_total or 0),
        booking_id=_booking_id_from(session.metadata),
    )


def construct_webhook_event(payload: bytes, sig_header: str) -> dict:
    """Verify the Stripe signature and return the event as a plain dict."""
    endpoint_secret = current_app.config.get("STRIPE_WEBHOOK_SECRET")
    if not endpoint_secret:
        raise ServiceUnavailable("Webhook secret not configured")
    # raises ValueError / stripe.SignatureVerificationError
    stripe.Webhook.construct_event(payload, sig_header, endpoint_secret)
    return json.loads(payload)
