import logging

from flask import Flask, jsonify
from config import Config
from routes import (
    health_bp,
    booking_bp,
    availability_bp,
    payments_bp,
    webhook_bp,
    p2p_bp,
    calendar_bp,
    audit_bp,
)

from models import db
from flask_migrate import Migrate
from services.errors import BookingError
from services.scheduler import AbandonedBookingScheduler


def create_app(config_overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # scheduler logs outside request context go through the root logger
    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="[%(asctime)s] %(levelname)s in %(name)s: %(message)s",
    )
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(availability_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(webhook_bp)
    app.register_blueprint(p2p_bp)
    app.register_blueprint(calendar_bp)
    app.register_blueprint(audit_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    @app.errorhandler(BookingError)
    def _booking_error(exc):
        if exc.status_code >= 500:
            app.logger.error("%s: %s", type(exc).__name__, exc.reason)
        return jsonify(error=exc.reason), exc.status_code

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        return resp

    scheduler = AbandonedBookingScheduler(app)
    app.extensions["booking_scheduler"] = scheduler
    if app.config.get("SCHEDULER_ENABLED"):
        scheduler.start()

    register_cli(app)

    return app

#-------------------------
import click
from security.rbac import hash_owner_key

def register_cli(app):
    @app.cli.command("hash-owner-key")
    @click.argument("key")
    def hash_key(key):
        """Print the bcrypt hash to put in OWNER_KEY_HASH."""
        print(hash_owner_key(key))

    @app.cli.command("init-db")
    def init_db():
        """Create all tables (development only; use `flask db upgrade` otherwise)."""
        db.create_all()
        print("Database tables created")

    @app.cli.command("sweep")
    def sweep():
        """Run one abandoned-booking sweep now."""
        report = app.extensions["booking_scheduler"].run_sweep()
        if report is None:
            print("A sweep is already running")
            return
        print(
            f"reminders={len(report.reminders_sent)} expired={len(report.expired)} "
            f"event_reminders={len(report.event_reminders_sent)} skipped={len(report.skipped)} "
            f"failures={len(report.failures)}"
        )

#-------------------------




if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5000)
