"""Outbound SMS through the Twilio REST API."""

from typing import Any, Dict

from ..core.logging import get_logger
from .base import ServiceAdapter, utc_timestamp

logger = get_logger(__name__)

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"
DEFAULT_PHONE = "+1234567890"
DEFAULT_MESSAGE = "Workflow automation test message"


class SmsAdapter(ServiceAdapter):
    """Sends a text message from the configured Twilio number."""

    name = "sms"

    @property
    def configured(self) -> bool:
        return bool(
            self.settings.twilio_account_sid
            and self.settings.twilio_auth_token
            and self.settings.twilio_phone_number
        )

    def execute(self, config: Dict[str, Any], previous_results: Dict[str, Any]) -> Dict[str, Any]:
        to_phone = config.get("phone") or DEFAULT_PHONE
        message = config.get("message") or DEFAULT_MESSAGE
        account_sid = self.settings.twilio_account_sid

        response = self.http.post(
            f"{TWILIO_API_BASE}/Accounts/{account_sid}/Messages.json",
            data={"To": to_phone, "From": self.settings.twilio_phone_number, "Body": message},
            auth=(account_sid, self.settings.twilio_auth_token),
            timeout=self.settings.service_timeout
        )
        payload = self.check_response(response).json()

        logger.info(f"Sent SMS to {to_phone}")
        return {
            "sent": True,
            "real_service": True,
            "to": to_phone,
            "message": message,
            "sid": payload["sid"],
            "timestamp": utc_timestamp(),
            "status_message": "Real SMS sent successfully"
        }

    def simulate(self, config: Dict[str, Any], previous_results: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "sent": True,
            "real_service": False,
            "to": config.get("phone") or DEFAULT_PHONE,
            "message": config.get("message") or DEFAULT_MESSAGE,
            "timestamp": utc_timestamp(),
            "status_message": "Twilio not configured - this would be a real SMS"
        }

    def fallback(self, config, previous_results, failure):
        result = super().fallback(config, previous_results, failure)
        result["sent"] = False
        result["status_message"] = "SMS delivery failed"
        return result
