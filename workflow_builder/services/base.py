"""Common contract for external service adapters."""

from datetime import datetime
from typing import Any, Dict, Optional

import requests

from ..config import IntegrationSettings
from ..core.exceptions import IntegrationFailure
from ..core.logging import get_logger

logger = get_logger(__name__)


def utc_timestamp() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.utcnow().isoformat() + "Z"


class ServiceAdapter:
    """Wraps one external integration behind a real-or-simulated contract.

    ``invoke`` attempts the real call when the adapter is configured and
    returns a simulated result of the same shape otherwise. Any failure of
    the real call is absorbed: the caller gets the simulated result with
    ``real_service`` false and an ``error`` annotation, never an exception.

    Subclasses implement ``configured``, ``execute`` and ``simulate``.
    """

    name = "service"

    def __init__(self, settings: IntegrationSettings, http: Optional[requests.Session] = None):
        self.settings = settings
        self.http = http or requests.Session()

    @property
    def configured(self) -> bool:
        raise NotImplementedError

    def can_execute(self, config: Dict[str, Any]) -> bool:
        """Whether a real call should be attempted for this configuration."""
        return self.configured

    def invoke(self, config: Optional[Dict[str, Any]] = None,
               previous_results: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run the integration for one node.

        Args:
            config: The node's configuration mapping
            previous_results: Predecessor results keyed by node ID

        Returns:
            Result mapping carrying a ``real_service`` marker
        """
        config = config or {}
        previous_results = previous_results or {}

        if not self.can_execute(config):
            logger.debug(f"{self.name} not configured - returning simulated result")
            return self.simulate(config, previous_results)

        try:
            return self.execute(config, previous_results)
        except IntegrationFailure as failure:
            return self._fallback(config, previous_results, failure)
        except Exception as e:
            failure = IntegrationFailure(str(e) or type(e).__name__, service=self.name)
            return self._fallback(config, previous_results, failure)

    def execute(self, config: Dict[str, Any], previous_results: Dict[str, Any]) -> Dict[str, Any]:
        """Perform the real external call."""
        raise NotImplementedError

    def simulate(self, config: Dict[str, Any], previous_results: Dict[str, Any]) -> Dict[str, Any]:
        """Produce a deterministic-shape result without external I/O."""
        raise NotImplementedError

    def fallback(self, config: Dict[str, Any], previous_results: Dict[str, Any],
                 failure: IntegrationFailure) -> Dict[str, Any]:
        """Result returned after a failed real call."""
        result = self.simulate(config, previous_results)
        result["real_service"] = False
        result["error"] = failure.message
        return result

    def _fallback(self, config, previous_results, failure: IntegrationFailure) -> Dict[str, Any]:
        logger.warning(f"{self.name} call failed, falling back to simulated result: {failure.message}")
        return self.fallback(config, previous_results, failure)

    def check_response(self, response: requests.Response) -> requests.Response:
        """Raise IntegrationFailure for a non-2xx response."""
        if not response.ok:
            raise IntegrationFailure(
                f"{self.name} returned HTTP {response.status_code}",
                service=self.name,
                status_code=response.status_code
            )
        return response
