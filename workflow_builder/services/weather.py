"""Current weather lookup through OpenWeatherMap."""

import random
from typing import Any, Dict, Optional

import requests

from ..config import IntegrationSettings
from .base import ServiceAdapter, utc_timestamp

OPENWEATHER_URL = "https://api.openweathermap.org/data/2.5/weather"
DEFAULT_LOCATION = "New York"
SIMULATED_CONDITIONS = ["Sunny", "Cloudy", "Rainy", "Snowy"]


class WeatherAdapter(ServiceAdapter):
    """Fetches current conditions for the configured location."""

    name = "weather"

    def __init__(self, settings: IntegrationSettings, http: Optional[requests.Session] = None,
                 rng: Optional[random.Random] = None):
        super().__init__(settings, http)
        self.rng = rng or random.Random()

    @property
    def configured(self) -> bool:
        return bool(self.settings.openweather_api_key)

    def execute(self, config: Dict[str, Any], previous_results: Dict[str, Any]) -> Dict[str, Any]:
        location = config.get("location") or DEFAULT_LOCATION
        response = self.http.get(
            OPENWEATHER_URL,
            params={"q": location, "appid": self.settings.openweather_api_key, "units": "metric"},
            timeout=self.settings.service_timeout
        )
        data = self.check_response(response).json()

        return {
            "real_service": True,
            "location": data["name"],
            "temperature": data["main"]["temp"],
            "condition": data["weather"][0]["description"],
            "humidity": data["main"]["humidity"],
            "wind_speed": data["wind"]["speed"],
            "pressure": data["main"]["pressure"],
            "timestamp": utc_timestamp()
        }

    def simulate(self, config: Dict[str, Any], previous_results: Dict[str, Any]) -> Dict[str, Any]:
        # temperature in [60, 90), wind speed in [5, 25)
        return {
            "real_service": False,
            "location": config.get("location") or DEFAULT_LOCATION,
            "temperature": self.rng.randrange(60, 90),
            "condition": self.rng.choice(SIMULATED_CONDITIONS),
            "humidity": self.rng.randrange(0, 100),
            "wind_speed": self.rng.randrange(5, 25),
            "timestamp": utc_timestamp(),
            "status_message": "OpenWeather API key not configured - using simulated data"
        }

    def fallback(self, config, previous_results, failure):
        result = super().fallback(config, previous_results, failure)
        result["status_message"] = "Weather service unavailable - using simulated data"
        return result
