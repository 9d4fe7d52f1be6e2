"""Outbound email over SMTP."""

import json
import smtplib
from email.mime.text import MIMEText
from typing import Any, Dict

from ..core.logging import get_logger
from .base import ServiceAdapter, utc_timestamp

logger = get_logger(__name__)

DEFAULT_RECIPIENT = "test@example.com"
DEFAULT_SUBJECT = "Workflow Automation Test"


def build_email_body(previous_results: Dict[str, Any]) -> str:
    """Render predecessor results as the plain-text message body."""
    body = "Workflow execution completed successfully!\n\n"
    if previous_results:
        body += "Previous node results:\n"
        for result in previous_results.values():
            body += f"- {json.dumps(result, indent=2, default=str)}\n"
    return body


class EmailAdapter(ServiceAdapter):
    """Sends an email through the configured SMTP server."""

    name = "email"

    @property
    def configured(self) -> bool:
        return bool(self.settings.smtp_user and self.settings.smtp_password)

    def _recipient(self, config: Dict[str, Any]) -> str:
        return config.get("to") or DEFAULT_RECIPIENT

    def _subject(self, config: Dict[str, Any]) -> str:
        return config.get("subject") or DEFAULT_SUBJECT

    def execute(self, config: Dict[str, Any], previous_results: Dict[str, Any]) -> Dict[str, Any]:
        to_email = self._recipient(config)
        subject = self._subject(config)

        msg = MIMEText(build_email_body(previous_results), "plain")
        msg["From"] = self.settings.smtp_user
        msg["To"] = to_email
        msg["Subject"] = subject

        smtp_kwargs = {}
        if self.settings.service_timeout:
            smtp_kwargs["timeout"] = self.settings.service_timeout

        with smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port, **smtp_kwargs) as server:
            server.starttls()
            server.login(self.settings.smtp_user, self.settings.smtp_password)
            server.send_message(msg)

        logger.info(f"Sent email to {to_email}")
        return {
            "sent": True,
            "real_service": True,
            "to": to_email,
            "subject": subject,
            "timestamp": utc_timestamp(),
            "status_message": "Real email sent successfully"
        }

    def simulate(self, config: Dict[str, Any], previous_results: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "sent": True,
            "real_service": False,
            "to": self._recipient(config),
            "subject": self._subject(config),
            "timestamp": utc_timestamp(),
            "status_message": "SMTP not configured - this would be a real email"
        }

    def fallback(self, config, previous_results, failure):
        result = super().fallback(config, previous_results, failure)
        result["sent"] = False
        result["status_message"] = "Email delivery failed"
        return result
