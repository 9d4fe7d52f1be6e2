"""Process-wide service adapter handles."""

from typing import Dict, Optional

import requests

from ..config import IntegrationSettings, get_integration_settings
from ..core.logging import get_logger
from .email import EmailAdapter
from .github import GitHubAdapter
from .sms import SmsAdapter
from .social import SocialAdapter
from .weather import WeatherAdapter

logger = get_logger(__name__)


class ServiceRegistry:
    """Holds one adapter instance per integration, sharing a single HTTP session.

    Built once at startup from integration settings and handed to the node
    executor by reference.
    """

    def __init__(self, settings: IntegrationSettings, http: Optional[requests.Session] = None):
        self.settings = settings
        self.http = http or requests.Session()

        self.email = EmailAdapter(settings, self.http)
        self.sms = SmsAdapter(settings, self.http)
        self.weather = WeatherAdapter(settings, self.http)
        self.social = SocialAdapter(settings, self.http)
        self.github = GitHubAdapter(settings, self.http)

        logger.debug(f"Service registry initialized: {self.status()}")

    @classmethod
    def from_settings(cls, settings: Optional[IntegrationSettings] = None) -> 'ServiceRegistry':
        return cls(settings or get_integration_settings())

    def status(self) -> Dict[str, bool]:
        """Which integrations will attempt real calls."""
        return {
            "email": self.email.configured,
            "sms": self.sms.configured,
            "weather": self.weather.configured,
            "twitter": self.social.configured,
            "github": self.github.configured
        }

    def close(self) -> None:
        self.http.close()
