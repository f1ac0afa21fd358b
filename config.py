import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as foamworks.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "foamworks.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Owner API key (bcrypt hash); generate with `flask hash-owner-key <key>`
    OWNER_KEY_HASH = os.getenv("OWNER_KEY_HASH")
    OWNER_KEY_HEADER = "X-Owner-Key"

    # Booking rules
    MAX_PARTY_SIZE = int(os.getenv("MAX_PARTY_SIZE", "100"))
    MIN_LEAD_HOURS = 48
    PENDING_EXPIRY_HOURS = 72
    REMINDER_AFTER_HOURS = 48
    EVENT_REMINDER_TIERS = (48, 24)
    EVENT_REMINDER_WINDOW_HOURS = 1
    EVENT_TIMEZONE = os.getenv("EVENT_TIMEZONE", "America/Chicago")

    DAILY_TIME_SLOTS = ["10:00 AM", "12:00 PM", "2:00 PM", "4:00 PM", "6:00 PM"]

    # Package prices in cents
    PACKAGES = {
        "quick-foam": {"name": "Quick Foam Fun (30 Minutes)", "price_cents": 20000},
        "classic-party": {"name": "Classic Party Package (1 Hour)", "price_cents": 32500},
        "extended-foam": {"name": "Extended Foam Experience (2 Hours)", "price_cents": 43000},
        "surprise-in-style": {"name": "Surprise in Style Gender Reveal (30 Minutes)", "price_cents": 30000},
        "extended-reveal": {"name": "Extended Reveal Celebration (1 Hour)", "price_cents": 47500},
    }

    # Travel fee
    TRAVEL_FEE_ENABLED = os.getenv("TRAVEL_FEE_ENABLED", "false").lower() == "true"
    BUSINESS_ADDRESS = os.getenv("BUSINESS_ADDRESS", "")
    TRAVEL_FREE_MILES = float(os.getenv("TRAVEL_FREE_MILES", "20"))
    TRAVEL_RATE_CENTS_PER_MILE = int(os.getenv("TRAVEL_RATE_CENTS_PER_MILE", "200"))
    GOOGLE_MAPS_API_KEY = os.getenv("GOOGLE_MAPS_API_KEY")
    DISTANCE_TIMEOUT_SECONDS = 10

    # Peer-to-peer rail
    P2P_PAYEE_HANDLE = os.getenv("P2P_PAYEE_HANDLE", "@FoamWorksPartyCo")
    P2P_AMOUNT_TOLERANCE_CENTS = 100
    UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", os.path.join(BASE_DIR, "uploads"))
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024  # 10 MB receipts

    # Evidence scoring (OpenAI vision)
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
    OPENAI_EVIDENCE_MODEL = os.getenv("OPENAI_EVIDENCE_MODEL", "gpt-4o")
    OPENAI_TIMEOUT_SECONDS = 30

    # Stripe
    STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
    STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
    STRIPE_SUCCESS_URL = os.getenv("STRIPE_SUCCESS_URL")
    STRIPE_CANCEL_URL = os.getenv("STRIPE_CANCEL_URL")
    STRIPE_CURRENCY = "usd"

    # Scheduler
    SCHEDULER_ENABLED = os.getenv("SCHEDULER_ENABLED", "false").lower() == "true"
    SCHEDULER_INTERVAL_SECONDS = 60 * 60

    # Email (SMTP)
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL")
    SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"
    SMTP_USE_SSL = os.getenv("SMTP_USE_SSL", "false").lower() == "true"  # port 465
    SMTP_FROM_NAME = os.getenv("SMTP_FROM_NAME", "Foam Works Party Co")
    SMTP_REPLY_TO = os.getenv("SMTP_REPLY_TO")

    # Links in emails
    PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:5000")

    # Basic app settings
    DEBUG = False
