"""
AbuseIPDB provider - blacklist pull and single-IP checks.

API docs: https://docs.abuseipdb.com/
"""

from typing import Any, Dict, List, Optional

import httpx

from .base import ExternalIndicator, FeedProvider, logger


class AbuseIPDBProvider(FeedProvider):
    name = "abuseipdb"

    BLACKLIST_URL = "https://api.abuseipdb.com/api/v2/blacklist"
    CHECK_URL = "https://api.abuseipdb.com/api/v2/check"

    def __init__(self, api_key: str = "", confidence_minimum: int = 80, limit: int = 1000,
                 timeout: float = 30.0, client: Optional[httpx.Client] = None):
        super().__init__(api_key=api_key, timeout=timeout, client=client)
        self.confidence_minimum = confidence_minimum
        self.limit = limit

    def _headers(self) -> Dict[str, str]:
        return {"Key": self.api_key, "Accept": "application/json"}

    @staticmethod
    def _reputation(item: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "abuse_confidence": item.get("abuseConfidencePercentage", 0),
            "total_reports": item.get("totalReports", 0),
            "last_reported": item.get("lastReportedAt"),
            "country_code": item.get("countryCode"),
            "isp": item.get("isp"),
        }

    def fetch(self) -> List[ExternalIndicator]:
        if not self.enabled:
            logger.info("abuseipdb: API key not configured, skipping pull")
            return []
        data = self._get(
            self.BLACKLIST_URL,
            params={"confidenceMinimum": self.confidence_minimum, "limit": self.limit},
            headers=self._headers(),
        )
        indicators = []
        for item in data.get("data", []):
            ip = item.get("ipAddress")
            if not ip:
                continue
            indicators.append(ExternalIndicator(
                token=ip,
                raw_score=float(item.get("abuseConfidencePercentage") or 0),
                source=self.name,
                metadata=self._reputation(item),
            ))
        self._mark_refreshed()
        logger.info("abuseipdb: pulled %d indicators", len(indicators))
        return indicators

    def lookup(self, token: str) -> Optional[Dict[str, Any]]:
        if not self.enabled:
            return None
        data = self._get(
            self.CHECK_URL,
            params={"ipAddress": token, "maxAgeInDays": 90},
            headers=self._headers(),
        )
        item = data.get("data")
        return self._reputation(item) if item else None
