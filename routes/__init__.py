from .health import health_bp
from .booking import booking_bp
from .availability import availability_bp
from .payments import payments_bp
from .stripe_webhook import webhook_bp
from .p2p import p2p_bp
from .calendar import calendar_bp
from .audit_logs import audit_bp
