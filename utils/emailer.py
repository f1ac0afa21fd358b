import smtplib
from email.message import EmailMessage
from email.utils import formataddr

from flask import current_app


def _connect(cfg):
    host = cfg.get("SMTP_HOST")
    port = cfg.get("SMTP_PORT", 587)
    if cfg.get("SMTP_USE_SSL"):
        return smtplib.SMTP_SSL(host, port, timeout=10)
    server = smtplib.SMTP(host, port, timeout=10)
    if cfg.get("SMTP_USE_TLS", True):
        server.starttls()
    return server


def send_email(to_email: str, subject: str, body: str, html: str = None):
    """Send one message. Returns (ok, error); never raises on delivery problems."""
    cfg = current_app.config
    username = cfg.get("SMTP_USERNAME")
    password = cfg.get("SMTP_PASSWORD")
    from_email = cfg.get("SMTP_FROM_EMAIL") or username

    if not cfg.get("SMTP_HOST") or not from_email:
        current_app.logger.info("Email not configured; skipped %r to %s", subject, to_email)
        return False, "Email not configured"
    if not to_email:
        return False, "No recipient"

    msg = EmailMessage()
    msg["From"] = formataddr((cfg.get("SMTP_FROM_NAME") or "", from_email))
    msg["To"] = to_email
    msg["Subject"] = subject
    if cfg.get("SMTP_REPLY_TO"):
        msg["Reply-To"] = cfg["SMTP_REPLY_TO"]
    msg.set_content(body)
    if html:
        msg.add_alternative(html, subtype="html")

    try:
        with _connect(cfg) as server:
            if username and password:
                server.login(username, password)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as exc:
        current_app.logger.warning("Email %r to %s failed: %s", subject, to_email, exc)
        return False, str(exc)
    return True, None
