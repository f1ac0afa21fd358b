"""Error taxonomy for the booking engine.

Every error carries a customer-facing reason string and the HTTP status the
API answers with. Routes never catch these individually; ``app.py`` registers
one handler that renders ``{"error": reason}``.
"""


class BookingError(Exception):
    status_code = 400

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class ValidationError(BookingError):
    status_code = 400


class PaymentNotCompleted(BookingError):
    status_code = 400


class NotFoundError(BookingError):
    status_code = 404


class ConflictError(BookingError):
    status_code = 409


class EvidenceRejected(BookingError):
    """Receipt failed the authenticity/recipient gate; nothing was stored."""
    status_code = 422


class ServiceUnavailable(BookingError):
    """An upstream collaborator (Stripe, OpenAI, maps) failed."""
    status_code = 503
