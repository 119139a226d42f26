"""
Base feed provider class
"""

import time
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional

import httpx

logger = logging.getLogger("edlhub.feeds")


@dataclass
class ExternalIndicator:
    """Normalized indicator as pulled from a reputation provider"""
    token: str
    raw_score: float
    source: str
    metadata: Dict[str, Any] = field(default_factory=dict)


class FeedError(Exception):
    """A provider pull failed (network, auth, malformed response)"""


class FeedProvider(ABC):
    """Base class for pull-based reputation providers"""

    name = "base"

    def __init__(self, api_key: str = "", timeout: float = 30.0, client: Optional[httpx.Client] = None):
        self.api_key = api_key
        self.timeout = timeout
        self._client = client
        self.last_refresh = 0.0
        self.error_count = 0

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    @abstractmethod
    def fetch(self) -> List[ExternalIndicator]:
        """Pull the provider's current snapshot"""
        pass

    @abstractmethod
    def lookup(self, token: str) -> Optional[Dict[str, Any]]:
        """Reputation data for a single token, or None if unknown"""
        pass

    def get_status(self) -> Dict[str, Any]:
        """Get provider status"""
        return {
            "name": self.name,
            "status": "enabled" if self.enabled else "disabled",
            "last_refresh": self.last_refresh,
            "error_count": self.error_count,
        }

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None,
             headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        try:
            if self._client is not None:
                resp = self._client.get(url, params=params, headers=headers, timeout=self.timeout)
            else:
                resp = httpx.get(url, params=params, headers=headers, timeout=self.timeout)
            if resp.status_code == 404:
                return {}
            resp.raise_for_status()
            return resp.json()
        except (httpx.HTTPError, ValueError) as e:
            self.error_count += 1
            logger.warning("%s request failed: %s", self.name, e)
            raise FeedError(f"{self.name}: {e}") from e

    def _mark_refreshed(self):
        self.last_refresh = time.time()
