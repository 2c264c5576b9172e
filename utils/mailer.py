"""
utils/mailer.py
-----------------
Outgoing mail over SMTP.
"""

import logging
import smtplib
from email.message import EmailMessage

from utils.errors import DeliveryFailed

logger = logging.getLogger(__name__)


class SmtpMailer:
    def __init__(self, host=None, port=587, user=None, password=None, sender=None, timeout=10):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender or user
        self.timeout = timeout

    @classmethod
    def from_config(cls, config):
        return cls(
            host=config.get("SMTP_HOST"),
            port=config.get("SMTP_PORT", 587),
            user=config.get("SMTP_USER"),
            password=config.get("SMTP_PASSWORD"),
            sender=config.get("SMTP_FROM"),
            timeout=config.get("SMTP_TIMEOUT", 10),
        )

    @property
    def configured(self):
        return bool(self.host and self.sender)

    def send(self, to, subject, html_body):
        if not self.configured:
            raise DeliveryFailed("SMTP is not configured. Set SMTP_HOST and SMTP_FROM.")

        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = ", ".join(to)
        msg.set_content("This message requires an HTML capable mail client.")
        msg.add_alternative(html_body, subtype="html")

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.starttls()
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("Mail delivery to %s failed: %s", to, exc)
            raise DeliveryFailed(f"Could not send email: {exc}") from exc
