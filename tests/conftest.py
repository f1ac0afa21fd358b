from datetime import datetime

import pytest

from app import create_app
from models import db
from models.booking import Booking
from security.rbac import hash_owner_key
from services import ledger
from services.evidence_scorer import EvidenceScore
from services.validation import validate_booking_input

OWNER_KEY = "owner-secret"
NOW = datetime(2025, 5, 1, 12, 0)

# modules that read the wall clock through their own `utcnow` import
CLOCK_MODULES = (
    "routes.booking",
    "routes.availability",
    "routes.payments",
    "routes.p2p",
    "routes.calendar",
    "routes.stripe_webhook",
)


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "SCHEDULER_ENABLED": False,
        "EVENT_TIMEZONE": "UTC",
        "OWNER_KEY_HASH": hash_owner_key(OWNER_KEY, rounds=4),
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
        "TRAVEL_FEE_ENABLED": False,
        "OPENAI_API_KEY": None,
        "STRIPE_SECRET_KEY": None,
        "STRIPE_WEBHOOK_SECRET": "whsec_test",
        "P2P_PAYEE_HANDLE": "@FoamWorks",
    })
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def owner_headers():
    return {"X-Owner-Key": OWNER_KEY}


@pytest.fixture(autouse=True)
def frozen_now(monkeypatch):
    for module in CLOCK_MODULES:
        monkeypatch.setattr(f"{module}.utcnow", lambda: NOW)
    return NOW


class Outbox:
    def __init__(self):
        self.sent = []
        self.failing = set()

    def send_email(self, to_email, subject, body, html=None):
        if to_email in self.failing:
            return False, "SMTP unavailable"
        self.sent.append({"to": to_email, "subject": subject, "body": body})
        return True, None

    def to(self, email):
        return [m for m in self.sent if m["to"] == email]


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    box = Outbox()
    monkeypatch.setattr("utils.emailer.send_email", box.send_email)
    return box


@pytest.fixture
def scorer(monkeypatch):
    """Set ``scorer.result`` (an EvidenceScore or an exception) before uploading."""
    class FakeScorer:
        result = EvidenceScore(True, True, None, "low", "")
        calls = 0

        def __call__(self, image_bytes, mime_type="image/jpeg"):
            FakeScorer.calls += 1
            if isinstance(self.result, Exception):
                raise self.result
            return self.result

    fake = FakeScorer()
    monkeypatch.setattr("services.evidence_scorer.score_evidence", fake)
    return fake


def booking_payload(**overrides):
    data = {
        "customer_name": "Dana Rivers",
        "email": "dana@example.com",
        "phone": "(555) 123-4567",
        "address": "12 Bubble Lane, Austin TX",
        "postal_code": "78701",
        "party_size": 20,
        "package_type": "classic-party",
        "event_date": "2025-06-01",
        "event_time": "2:00 PM",
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_booking(app):
    def _make(created_at=NOW, **overrides):
        draft = validate_booking_input(booking_payload(**overrides), created_at)
        return ledger.create_booking(draft, created_at)
    return _make


def reload(booking_id) -> Booking:
    db.session.expire_all()
    return db.session.get(Booking, booking_id)
