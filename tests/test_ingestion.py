"""
Tests for the ingestion merger and reputation refresh
"""

from typing import Any, Dict, List, Optional

import pytest

from edlhub.feeds.base import ExternalIndicator, FeedError, FeedProvider
from edlhub.models.indicator import Indicator
from edlhub.services.indicators import IndicatorService
from edlhub.services.ingestion import UNCLASSIFIED, classify_threat, merge, refresh_reputation, sync_provider
from edlhub.services.whitelist import WhitelistService


class StaticProvider(FeedProvider):
    """Provider serving canned data"""

    name = "abuseipdb"

    def __init__(self, snapshot=None, reputation=None, error: Optional[Exception] = None, api_key: str = "key"):
        super().__init__(api_key=api_key)
        self.snapshot = snapshot or []
        self.reputation = reputation
        self.error = error

    def fetch(self) -> List[ExternalIndicator]:
        if self.error:
            raise self.error
        return list(self.snapshot)

    def lookup(self, token: str) -> Optional[Dict[str, Any]]:
        if self.error:
            raise self.error
        return self.reputation


def abuse(token: str, score: float) -> ExternalIndicator:
    return ExternalIndicator(token=token, raw_score=score, source="abuseipdb",
                             metadata={"abuse_confidence": score})


class TestClassifyThreat:
    """Test the score threshold table"""

    @pytest.mark.parametrize("score,expected", [
        (100, "malware"),
        (90, "malware"),
        (89.9, "c2"),
        (85, "c2"),
        (84, "bruteforce"),
        (80, "bruteforce"),
        (79.9, UNCLASSIFIED),
        (0, UNCLASSIFIED),
        (None, UNCLASSIFIED),
    ])
    def test_thresholds(self, score, expected):
        assert classify_threat(score) == expected


class TestMerge:
    """Test merge()"""

    def test_inserts_into_holding_category(self, db, category_id):
        holding = category_id("sources")
        result = merge(db, [abuse("1.1.1.1", 95), abuse("2.2.2.2", 86), abuse("3.3.3.3", 50)], holding)

        assert result.to_dict() == {"added_count": 3, "skipped_count": 0}
        by_token = {i.token: i for i in IndicatorService.list_by_category(db, holding)}
        assert by_token["1.1.1.1"].source_sub_type == "malware"
        assert by_token["2.2.2.2"].source_sub_type == "c2"
        assert by_token["3.3.3.3"].source_sub_type == UNCLASSIFIED
        assert by_token["1.1.1.1"].source == "abuseipdb"
        assert by_token["1.1.1.1"].added_by == "abuseipdb_sync"
        assert by_token["1.1.1.1"].reputation == {"abuseipdb": {"abuse_confidence": 95}}

    def test_rerun_adds_nothing(self, db, category_id):
        holding = category_id("sources")
        snapshot = [abuse("1.1.1.1", 95), abuse("2.2.2.2", 86)]
        merge(db, snapshot, holding)

        result = merge(db, snapshot, holding)

        assert result.added == 0
        assert result.skipped == len(snapshot)
        assert db.query(Indicator).count() == 2

    def test_missing_score_is_unclassified(self, db, category_id):
        holding = category_id("sources")
        snapshot = [ExternalIndicator(token="5.5.5.5", raw_score=None, source="abuseipdb"), abuse("6.6.6.6", 95)]

        result = merge(db, snapshot, holding)

        assert (result.added, result.skipped) == (2, 0)
        by_token = {i.token: i for i in IndicatorService.list_by_category(db, holding)}
        assert by_token["5.5.5.5"].source_sub_type == UNCLASSIFIED
        assert by_token["5.5.5.5"].description == "abuseipdb: score n/a"

    def test_duplicates_within_snapshot(self, db, category_id):
        result = merge(db, [abuse("1.1.1.1", 95), abuse("1.1.1.1", 99)], category_id("sources"))
        assert (result.added, result.skipped) == (1, 1)

    def test_skips_whitelisted(self, db, category_id):
        WhitelistService.add(db, "8.8.8.8")
        result = merge(db, [abuse("8.8.8.8", 100), abuse("1.1.1.1", 95)], category_id("sources"))
        assert (result.added, result.skipped) == (1, 1)
        assert {i.token for i in db.query(Indicator).all()} == {"1.1.1.1"}

    def test_skips_manual_duplicates(self, db, category_id):
        manual = IndicatorService.insert(db, "1.1.1.1", category_id("malware"))
        result = merge(db, [abuse("1.1.1.1", 95)], category_id("sources"))
        assert result.skipped == 1
        assert IndicatorService.get(db, manual.id).source == "manual"

    def test_skips_invalid_and_unknown_source(self, db, category_id):
        snapshot = [
            abuse("not a token", 95),
            ExternalIndicator(token="5.5.5.5", raw_score=95, source="shodan"),
            abuse("6.6.6.6", 95),
        ]
        result = merge(db, snapshot, category_id("sources"))
        assert (result.added, result.skipped) == (1, 2)


class TestSync:
    """Test sync_provider() and refresh_reputation()"""

    def test_sync_provider(self, db, category_id):
        provider = StaticProvider(snapshot=[abuse("1.1.1.1", 95)])
        result = sync_provider(db, provider, category_id("sources"))
        assert result.added == 1

    def test_sync_provider_failure_propagates(self, db, category_id):
        provider = StaticProvider(error=FeedError("abuseipdb: 500"))
        with pytest.raises(FeedError):
            sync_provider(db, provider, category_id("sources"))
        assert db.query(Indicator).count() == 0

    def test_refresh_reputation_is_additive(self, db, category_id):
        indicator = IndicatorService.insert(
            db, "1.1.1.1", category_id("sources"), source="abuseipdb",
            reputation={"abuseipdb": {"abuse_confidence": 95}},
        )

        class VTProvider(StaticProvider):
            name = "virustotal"

        class Broken(StaticProvider):
            name = "abuseipdb"

        providers = [
            VTProvider(reputation={"malicious_percentage": 12.5}),
            Broken(error=FeedError("abuseipdb: timeout")),
        ]
        statuses = refresh_reputation(db, indicator.id, providers)

        assert statuses == {"virustotal": "updated", "abuseipdb": "error"}
        reputation = IndicatorService.get(db, indicator.id).reputation
        assert reputation["abuseipdb"] == {"abuse_confidence": 95}
        assert reputation["virustotal"] == {"malicious_percentage": 12.5}

    def test_refresh_reputation_disabled_and_unknown(self, db, category_id):
        indicator = IndicatorService.insert(db, "1.1.1.1", category_id("malware"))
        disabled = StaticProvider(api_key="")

        class Quiet(StaticProvider):
            name = "virustotal"

        statuses = refresh_reputation(db, indicator.id, [disabled, Quiet(reputation=None)])
        assert statuses == {"abuseipdb": "disabled", "virustotal": "unknown"}
        assert IndicatorService.get(db, indicator.id).reputation in (None, {})
