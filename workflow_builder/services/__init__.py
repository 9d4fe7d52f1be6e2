"""Service adapter layer: real external calls with simulated fallback."""

from .base import ServiceAdapter
from .email import EmailAdapter
from .sms import SmsAdapter
from .weather import WeatherAdapter
from .social import SocialAdapter
from .github import GitHubAdapter
from .registry import ServiceRegistry

__all__ = [
    "ServiceAdapter",
    "EmailAdapter",
    "SmsAdapter",
    "WeatherAdapter",
    "SocialAdapter",
    "GitHubAdapter",
    "ServiceRegistry",
]
