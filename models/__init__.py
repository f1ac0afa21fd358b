from .db import db
from .audit_log import AuditLog
from .booking import Booking
from .calendar_subscriber import CalendarSubscriber
from .reminder_marker import ReminderMarker
