"""
Abandoned booking scheduler.

One sweep runs three passes in order: pending-payment reminders, expiry of
stale pending bookings, then 48h/24h event reminders for confirmed bookings.
Every pass is safe to re-run; a booking is only marked as reminded after its
email actually went out, so a failed send is retried on the next sweep.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from models import db
from models.calendar_subscriber import CalendarSubscriber
from models.reminder_marker import ReminderMarker
from services import ledger, notifications
from services.event_time import hours_until, parse_event_datetime
from utils.audit import log_event
from utils.clock import utcnow

log = logging.getLogger(__name__)


@dataclass
class SweepReport:
    started_at: datetime
    reminders_sent: list = field(default_factory=list)
    expired: list = field(default_factory=list)
    event_reminders_sent: list = field(default_factory=list)  # (booking_id, email, tier)
    skipped: list = field(default_factory=list)                # unparseable event date/time
    failures: list = field(default_factory=list)               # (pass, booking_id, error)


def reminder_tier_for(hours_out: float, tiers, window_hours: float):
    for tier in tiers:
        if abs(hours_out - tier) <= window_hours:
            return tier
    return None


def event_reminder_sent(booking_id: int, email: str, tier: str) -> bool:
    return ReminderMarker.query.filter_by(booking_id=booking_id, recipient_email=email, tier=tier).first() is not None


def mark_event_reminder_sent(booking_id: int, email: str, tier: str, now) -> bool:
    db.session.add(ReminderMarker(booking_id=booking_id, recipient_email=email, tier=tier, sent_at=now))
    try:
        db.session.commit()
    except IntegrityError:
        # another sweep got there first
        db.session.rollback()
        return False
    return True


class AbandonedBookingScheduler:
    def __init__(self, app, interval_seconds=None, clock=utcnow):
        self.app = app
        self.interval = interval_seconds or app.config.get("SCHEDULER_INTERVAL_SECONDS", 3600)
        self.clock = clock
        self._stop = threading.Event()
        self._sweep_lock = threading.Lock()
        self._thread = None

    # ---------- lifecycle ----------

    def start(self):
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="booking-scheduler", daemon=True)
        self._thread.start()
        log.info("Scheduler started, running every %s minutes", self.interval // 60)

    def stop(self, timeout=5.0):
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None
        log.info("Scheduler stopped")

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _loop(self):
        while not self._stop.is_set():
            try:
                self.run_sweep()
            except Exception:
                log.exception("Sweep crashed")
            self._stop.wait(self.interval)

    # ---------- sweep ----------

    def run_sweep(self):
        """Run one sweep. Returns a SweepReport, or None if a sweep is already running."""
        if not self._sweep_lock.acquire(blocking=False):
            log.warning("Previous sweep still running, skipping")
            return None
        try:
            with self.app.app_context():
                now = self.clock()
                report = SweepReport(started_at=now)
                log.info("Running scheduled tasks at %s", now.isoformat())
                self.process_reminders(now, report)
                self.process_expired(now, report)
                self.process_event_reminders(now, report)
                log.info(
                    "Scheduled tasks complete: %d reminders, %d expired, %d event reminders, %d failures",
                    len(report.reminders_sent), len(report.expired),
                    len(report.event_reminders_sent), len(report.failures),
                )
                return report
        finally:
            self._sweep_lock.release()

    def process_reminders(self, now, report: SweepReport):
        bookings = ledger.bookings_needing_reminder(now)
        log.info("Found %d bookings needing reminder", len(bookings))
        for booking in bookings:
            try:
                ok, err = notifications.send_pending_reminder(booking)
                if not ok:
                    report.failures.append(("reminder", booking.id, err))
                    log.error("Failed to send reminder to booking %s: %s", booking.id, err)
                    continue
                if ledger.mark_reminder_sent(booking.id, now):
                    report.reminders_sent.append(booking.id)
                    log.info("Sent reminder to booking %s", booking.id)
            except Exception as exc:
                db.session.rollback()
                report.failures.append(("reminder", booking.id, str(exc)))
                log.exception("Error processing reminder for booking %s", booking.id)

    def process_expired(self, now, report: SweepReport):
        bookings = ledger.expired_pending_bookings(now)
        log.info("Found %d expired pending bookings", len(bookings))
        for booking in bookings:
            booking_id = booking.id
            try:
                # no-op if the booking was confirmed since it was read
                if not ledger.auto_expire(booking_id, now):
                    continue
                report.expired.append(booking_id)
                log.info("Auto-cancelled booking %s", booking_id)
                log_event("BOOKING_AUTO_EXPIRE", actor="system", entity="booking", entity_id=booking_id)

                ok, err = notifications.send_booking_cancelled(ledger.get_booking(booking_id))
                if not ok:
                    report.failures.append(("expiry_email", booking_id, err))
                    log.error("Failed to send cancellation email to booking %s: %s", booking_id, err)
            except Exception as exc:
                db.session.rollback()
                report.failures.append(("expiry", booking_id, str(exc)))
                log.exception("Error expiring booking %s", booking_id)

    def process_event_reminders(self, now, report: SweepReport):
        cfg = self.app.config
        tiers = cfg.get("EVENT_REMINDER_TIERS", (48, 24))
        window = cfg.get("EVENT_REMINDER_WINDOW_HOURS", 1)
        tz_name = cfg.get("EVENT_TIMEZONE", "UTC")

        subscribers = CalendarSubscriber.query.filter_by(is_active=True).all()
        for booking in ledger.confirmed_bookings():
            event_at = parse_event_datetime(booking.event_date, booking.event_time, tz_name)
            if event_at is None:
                report.skipped.append(booking.id)
                log.warning("Skipping booking %s: cannot parse %r %r", booking.id, booking.event_date, booking.event_time)
                continue

            hours = reminder_tier_for(hours_until(event_at, now), tiers, window)
            if hours is None:
                continue
            tier = f"event_{hours}h"

            recipients = {booking.email.lower(): None}
            for sub in subscribers:
                recipients.setdefault(sub.email, sub.unsubscribe_token)

            for email, token in recipients.items():
                try:
                    if event_reminder_sent(booking.id, email, tier):
                        continue
                    ok, err = notifications.send_event_reminder(booking, email, hours, unsubscribe_token=token)
                    if not ok:
                        report.failures.append(("event_reminder", booking.id, err))
                        log.error("Failed to send %s reminder for booking %s to %s: %s", tier, booking.id, email, err)
                        continue
                    if mark_event_reminder_sent(booking.id, email, tier, now):
                        report.event_reminders_sent.append((booking.id, email, tier))
                except Exception as exc:
                    db.session.rollback()
                    report.failures.append(("event_reminder", booking.id, str(exc)))
                    log.exception("Error sending %s reminder for booking %s", tier, booking.id)
