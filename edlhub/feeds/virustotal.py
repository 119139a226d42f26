"""
VirusTotal provider - IP and domain reputation.

VirusTotal has no blacklist endpoint, so fetch() re-checks a configured
watchlist of tokens and reports the malicious verdict percentage as score.
"""

from typing import Any, Dict, List, Optional

import httpx

from ..services.classifier import KIND_IP, classify
from .base import ExternalIndicator, FeedError, FeedProvider, logger


def malicious_percentage(stats: Dict[str, int]) -> float:
    """Share of engines flagging the token malicious, 0-100"""
    total = sum(int(stats.get(k, 0) or 0) for k in ("harmless", "malicious", "suspicious", "undetected", "timeout"))
    if total == 0:
        return 0.0
    return round(int(stats.get("malicious", 0) or 0) * 100.0 / total, 1)


class VirusTotalProvider(FeedProvider):
    name = "virustotal"

    API_URL = "https://www.virustotal.com/api/v3"

    def __init__(self, api_key: str = "", watchlist: Optional[List[str]] = None,
                 timeout: float = 30.0, client: Optional[httpx.Client] = None):
        super().__init__(api_key=api_key, timeout=timeout, client=client)
        self.watchlist = list(watchlist or [])

    def lookup(self, token: str) -> Optional[Dict[str, Any]]:
        if not self.enabled:
            return None
        # CIDR ranges cannot be looked up; use the network address
        bare = token.split("/", 1)[0]
        path = "ip_addresses" if classify(bare) == KIND_IP else "domains"
        data = self._get(f"{self.API_URL}/{path}/{bare}", headers={"x-apikey": self.api_key})
        attributes = (data.get("data") or {}).get("attributes")
        if not attributes:
            return None
        stats = attributes.get("last_analysis_stats") or {}
        return {
            "malicious_percentage": malicious_percentage(stats),
            "detection_stats": stats,
            "reputation": attributes.get("reputation", 0),
            "country": attributes.get("country"),
            "as_owner": attributes.get("as_owner"),
            "network": attributes.get("network"),
        }

    def fetch(self) -> List[ExternalIndicator]:
        if not self.enabled:
            logger.info("virustotal: API key not configured, skipping pull")
            return []
        indicators = []
        for token in self.watchlist:
            try:
                rep = self.lookup(token)
            except FeedError:
                continue
            if rep is None:
                continue
            indicators.append(ExternalIndicator(
                token=token,
                raw_score=rep["malicious_percentage"],
                source=self.name,
                metadata=rep,
            ))
        self._mark_refreshed()
        logger.info("virustotal: checked %d watchlist tokens, %d known", len(self.watchlist), len(indicators))
        return indicators
