"""Customer-facing emails. Every sender returns ``(ok, error)`` from the mailer."""

from flask import current_app

from services.validation import package_name
from utils import emailer

SIGNATURE = "Foam Works Party Co - Foaming Around and Find Out"


def _first_name(customer_name: str) -> str:
    parts = (customer_name or "").split()
    return parts[0] if parts else "there"


def _dollars(cents) -> str:
    return f"${(cents or 0) / 100:.2f}"


def send_booking_confirmation(booking):
    subject = f"Booking Confirmed! {booking.confirmation_number} - Foam Works Party Co"
    body = "\n".join([
        f"Hi {_first_name(booking.customer_name)},",
        "",
        "Great news! Your foam party booking has been confirmed. Here are your details:",
        "",
        f"Confirmation Number: {booking.confirmation_number}",
        f"Package: {package_name(booking.package_type)}",
        f"Date: {booking.event_date}",
        f"Time: {booking.event_time}",
        f"Location: {booking.address}",
        f"Party Size: {booking.party_size} guests",
        f"Amount Paid: {_dollars(booking.amount_paid_cents)}",
        "",
        SIGNATURE,
    ])
    return emailer.send_email(booking.email, subject, body)


def send_pending_reminder(booking):
    subject = "Complete Your Foam Party Booking - Expires Tomorrow!"
    body = "\n".join([
        f"Hi {_first_name(booking.customer_name)},",
        "",
        f"Your {package_name(booking.package_type)} booking for {booking.event_date} "
        f"at {booking.event_time} is still waiting for payment.",
        f"Booking number: {booking.id}",
        "",
        "Unpaid bookings are released after 3 days, so please complete your payment soon.",
        "",
        SIGNATURE,
    ])
    return emailer.send_email(booking.email, subject, body)


def send_booking_cancelled(booking):
    subject = "Your Foam Party Booking Has Been Cancelled"
    body = "\n".join([
        f"Hi {_first_name(booking.customer_name)},",
        "",
        f"Your {package_name(booking.package_type)} booking for {booking.event_date} has been cancelled.",
        booking.cancel_note or "",
        "",
        "We'd love to foam with you another time. You can book again any time on our website.",
        "",
        SIGNATURE,
    ])
    return emailer.send_email(booking.email, subject, body)


def send_event_reminder(booking, to_email: str, hours_out: int, unsubscribe_token=None):
    subject = f"Foam Party Reminder - {hours_out} Hours To Go!"
    lines = [
        "Hi there,",
        "",
        f"Reminder: a {package_name(booking.package_type)} is scheduled for "
        f"{booking.event_date} at {booking.event_time}.",
        f"Location: {booking.address}",
        "",
        SIGNATURE,
    ]
    if unsubscribe_token:
        base_url = current_app.config.get("PUBLIC_BASE_URL", "").rstrip("/")
        lines += ["", f"Unsubscribe: {base_url}/calendar-subscriptions/unsubscribe?token={unsubscribe_token}"]
    current_app.logger.debug("Event reminder (%sh) for booking %s to %s", hours_out, booking.id, to_email)
    return emailer.send_email(to_email, subject, "\n".join(lines))
