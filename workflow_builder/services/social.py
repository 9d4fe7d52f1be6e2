"""Social media posting. Twitter is the only platform with a real client."""

import json
from typing import Any, Dict

from requests_oauthlib import OAuth1

from ..core.logging import get_logger
from .base import ServiceAdapter, utc_timestamp

logger = get_logger(__name__)

TWITTER_TWEETS_URL = "https://api.twitter.com/2/tweets"
DEFAULT_PLATFORM = "twitter"
DEFAULT_CONTENT = "Automated post from workflow builder"


def _summarize(result: Any) -> str:
    if isinstance(result, (dict, list)):
        return json.dumps(result, separators=(",", ":"), default=str)[:50] + "..."
    return str(result)


def build_post_content(config: Dict[str, Any], previous_results: Dict[str, Any]) -> str:
    """Configured content with a short digest of the predecessor results appended."""
    content = config.get("content") or DEFAULT_CONTENT
    if previous_results:
        content += "\n\nData from workflow: " + " | ".join(
            _summarize(result) for result in previous_results.values()
        )
    return content


class SocialAdapter(ServiceAdapter):
    """Publishes a post on the configured platform."""

    name = "social"

    @property
    def configured(self) -> bool:
        return bool(
            self.settings.twitter_api_key
            and self.settings.twitter_api_secret
            and self.settings.twitter_access_token
            and self.settings.twitter_access_secret
        )

    def can_execute(self, config: Dict[str, Any]) -> bool:
        platform = config.get("platform") or DEFAULT_PLATFORM
        return platform == "twitter" and self.configured

    def execute(self, config: Dict[str, Any], previous_results: Dict[str, Any]) -> Dict[str, Any]:
        content = build_post_content(config, previous_results)
        auth = OAuth1(
            self.settings.twitter_api_key,
            client_secret=self.settings.twitter_api_secret,
            resource_owner_key=self.settings.twitter_access_token,
            resource_owner_secret=self.settings.twitter_access_secret
        )

        response = self.http.post(
            TWITTER_TWEETS_URL,
            json={"text": content},
            auth=auth,
            timeout=self.settings.service_timeout
        )
        tweet_id = self.check_response(response).json()["data"]["id"]

        logger.info(f"Published tweet {tweet_id}")
        return {
            "posted": True,
            "real_service": True,
            "platform": "twitter",
            "content": content,
            "tweet_id": tweet_id,
            "url": f"https://twitter.com/user/status/{tweet_id}",
            "timestamp": utc_timestamp(),
            "status_message": "Real Twitter post published"
        }

    def simulate(self, config: Dict[str, Any], previous_results: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "posted": True,
            "real_service": False,
            "platform": config.get("platform") or DEFAULT_PLATFORM,
            "content": build_post_content(config, previous_results),
            "timestamp": utc_timestamp(),
            "status_message": "Social media API not configured - this would be a real post"
        }

    def fallback(self, config, previous_results, failure):
        result = super().fallback(config, previous_results, failure)
        result["posted"] = False
        result["status_message"] = "Social media post failed"
        return result
