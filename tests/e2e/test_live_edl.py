"""
E2E smoke tests against a running EDL Hub.

Set EDLHUB_BASE_URL (e.g. http://localhost:8080) to enable.
"""

import os
import uuid

import pytest
import requests

BASE_URL = os.getenv("EDLHUB_BASE_URL")

pytestmark = [
    pytest.mark.e2e,
    pytest.mark.skipif(not BASE_URL, reason="EDLHUB_BASE_URL not set"),
]


class TestLiveEdl:
    """Add an indicator, see it published, remove it"""

    @pytest.fixture
    def api_base(self) -> str:
        return BASE_URL.rstrip("/")

    def test_health(self, api_base):
        response = requests.get(f"{api_base}/v1/health", timeout=10)
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_indicator_round_trip(self, api_base):
        token = f"e2e-{uuid.uuid4().hex[:8]}.example.com"
        created = requests.post(f"{api_base}/v1/indicators",
                                json={"token": token, "category": "malware"}, timeout=10)
        assert created.status_code == 201, created.text
        try:
            edl = requests.get(f"{api_base}/edl/malware", timeout=10)
            assert token in edl.text.splitlines()
            assert edl.headers["Cache-Control"] == "no-cache, no-store, must-revalidate"
        finally:
            requests.delete(f"{api_base}/v1/indicators/{created.json()['id']}", timeout=10)

        assert token not in requests.get(f"{api_base}/edl/malware", timeout=10).text.splitlines()
