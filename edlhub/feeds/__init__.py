"""
Reputation feed providers
"""

from typing import Dict

from ..config import (
    ABUSEIPDB_API_KEY, ABUSEIPDB_CONFIDENCE_MINIMUM, ABUSEIPDB_LIMIT,
    FEED_TIMEOUT_SECONDS, VIRUSTOTAL_API_KEY, VIRUSTOTAL_WATCHLIST,
)
from .abuseipdb import AbuseIPDBProvider
from .base import ExternalIndicator, FeedError, FeedProvider
from .virustotal import VirusTotalProvider

__all__ = [
    "AbuseIPDBProvider", "ExternalIndicator", "FeedError", "FeedProvider",
    "VirusTotalProvider", "get_provider", "providers",
]

providers: Dict[str, FeedProvider] = {
    AbuseIPDBProvider.name: AbuseIPDBProvider(
        api_key=ABUSEIPDB_API_KEY,
        confidence_minimum=ABUSEIPDB_CONFIDENCE_MINIMUM,
        limit=ABUSEIPDB_LIMIT,
        timeout=FEED_TIMEOUT_SECONDS,
    ),
    VirusTotalProvider.name: VirusTotalProvider(
        api_key=VIRUSTOTAL_API_KEY,
        watchlist=VIRUSTOTAL_WATCHLIST,
        timeout=FEED_TIMEOUT_SECONDS,
    ),
}


def get_provider(name: str) -> FeedProvider:
    """Raises KeyError for unknown providers"""
    return providers[name]
