"""
Tests for the indicator store
"""

import threading
import time
from unittest.mock import patch

import pytest

from edlhub.db import SessionLocal
from edlhub.errors import (
    AlreadyExists, AlreadyWhitelisted, IndicatorNotFound, StoreUnavailable, UnknownCategory, ValidationError,
)
from edlhub.models.indicator import Indicator
from edlhub.services import indicators as indicators_mod
from edlhub.services.classifier import KIND_FQDN, KIND_IP
from edlhub.services.indicators import IndicatorService
from edlhub.services.notifier import EVENT_INDICATOR_ADDED
from edlhub.services.whitelist import WhitelistService


class TestInsert:
    """Test IndicatorService.insert"""

    def test_insert_sets_fields(self, db, category_id):
        malware = category_id("malware")
        indicator = IndicatorService.insert(db, "  1.2.3.4 ", malware, description="seen in logs")

        assert indicator.token == "1.2.3.4"
        assert indicator.kind == KIND_IP
        assert indicator.category_id == malware
        assert indicator.source == "manual"
        assert indicator.description == "seen in logs"
        assert indicator.added_at == indicator.last_modified_at

    def test_duplicate_rejected_across_categories(self, db, category_id):
        IndicatorService.insert(db, "evil.example.com", category_id("malware"))
        with pytest.raises(AlreadyExists):
            IndicatorService.insert(db, "EVIL.example.com", category_id("phishing"))
        assert db.query(Indicator).count() == 1

    def test_whitelisted_rejected(self, db, category_id):
        WhitelistService.add(db, "8.8.8.8", description="google dns")
        with pytest.raises(AlreadyWhitelisted):
            IndicatorService.insert(db, "8.8.8.8", category_id("malware"))
        assert db.query(Indicator).count() == 0

    def test_unknown_category(self, db):
        with pytest.raises(UnknownCategory):
            IndicatorService.insert(db, "1.2.3.4", "no-such-category")

    def test_unknown_source(self, db, category_id):
        with pytest.raises(ValidationError):
            IndicatorService.insert(db, "1.2.3.4", category_id("malware"), source="shodan")

    def test_invalid_token(self, db, category_id):
        with pytest.raises(ValidationError):
            IndicatorService.insert(db, "not a token", category_id("malware"))

    def test_notifies_after_insert(self, db, category_id):
        with patch.object(indicators_mod.notifier, "notify") as notify:
            indicator = IndicatorService.insert(db, "c2.example.net", category_id("c2"))
        notify.assert_called_once()
        event_type, payload = notify.call_args[0]
        assert event_type == EVENT_INDICATOR_ADDED
        assert payload["id"] == indicator.id
        assert payload["kind"] == KIND_FQDN

    def test_concurrent_inserts_of_same_token(self, db, category_id):
        malware = category_id("malware")
        start = threading.Barrier(8)
        outcomes = []

        def insert_once():
            with SessionLocal() as session:
                start.wait(5)
                try:
                    IndicatorService.insert(session, "203.0.113.7", malware)
                    outcomes.append("added")
                except AlreadyExists:
                    outcomes.append("duplicate")

        threads = [threading.Thread(target=insert_once) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(10)

        assert sorted(outcomes) == ["added"] + ["duplicate"] * 7
        assert db.query(Indicator).filter(Indicator.token == "203.0.113.7").count() == 1

    def test_unique_constraint_maps_to_already_exists(self, db, category_id):
        """A row committed by another process after the existence check is a duplicate"""
        IndicatorService.insert(db, "1.2.3.4", category_id("malware"))
        with patch.object(indicators_mod, "token_exists", return_value=False):
            with pytest.raises(AlreadyExists):
                IndicatorService.insert(db, "1.2.3.4", category_id("c2"))
        assert db.query(Indicator).count() == 1

    def test_lock_timeout_raises_store_unavailable(self, db, category_id):
        malware = category_id("malware")
        held = threading.Event()
        release = threading.Event()

        def holder():
            with indicators_mod.token_lock:
                held.set()
                release.wait(5)

        t = threading.Thread(target=holder)
        t.start()
        try:
            held.wait(5)
            with patch.object(indicators_mod, "STORE_TIMEOUT_SECONDS", 0.05):
                with pytest.raises(StoreUnavailable):
                    IndicatorService.insert(db, "1.2.3.4", malware)
        finally:
            release.set()
            t.join()
        assert db.query(Indicator).count() == 0


class TestQueries:
    """Test get / delete / list"""

    def test_list_by_category_newest_first(self, db, category_id):
        malware = category_id("malware")
        now = time.time()
        IndicatorService.insert(db, "1.1.1.1", malware, now=now - 30)
        IndicatorService.insert(db, "2.2.2.2", malware, now=now - 10)
        IndicatorService.insert(db, "3.3.3.3", malware, now=now - 20)
        IndicatorService.insert(db, "4.4.4.4", category_id("c2"), now=now)

        tokens = [i.token for i in IndicatorService.list_by_category(db, malware)]
        assert tokens == ["2.2.2.2", "3.3.3.3", "1.1.1.1"]

    def test_list_all_by_source(self, db, category_id):
        IndicatorService.insert(db, "1.1.1.1", category_id("malware"))
        IndicatorService.insert(db, "2.2.2.2", category_id("sources"), source="abuseipdb")
        assert [i.token for i in IndicatorService.list_all(db, source="abuseipdb")] == ["2.2.2.2"]
        assert len(IndicatorService.list_all(db)) == 2

    def test_get_missing(self, db):
        with pytest.raises(IndicatorNotFound):
            IndicatorService.get(db, "missing")

    def test_delete_is_idempotent(self, db, category_id):
        indicator = IndicatorService.insert(db, "1.1.1.1", category_id("malware"))
        indicator_id = indicator.id
        assert IndicatorService.delete(db, indicator_id) is True
        assert IndicatorService.delete(db, indicator_id) is False

    def test_token_reusable_after_delete(self, db, category_id):
        indicator = IndicatorService.insert(db, "1.1.1.1", category_id("malware"))
        IndicatorService.delete(db, indicator.id)
        again = IndicatorService.insert(db, "1.1.1.1", category_id("c2"))
        assert again.category_id == category_id("c2")


class TestReassign:
    """Test atomic bulk reassign"""

    def test_moves_all(self, db, category_id):
        malware, c2 = category_id("malware"), category_id("c2")
        ids = [IndicatorService.insert(db, f"10.0.0.{n}", malware).id for n in range(3)]

        assert IndicatorService.reassign(db, ids, c2) == 3
        assert len(IndicatorService.list_by_category(db, c2)) == 3
        assert IndicatorService.list_by_category(db, malware) == []

    def test_unknown_id_moves_nothing(self, db, category_id):
        malware, c2 = category_id("malware"), category_id("c2")
        ids = [IndicatorService.insert(db, f"10.0.0.{n}", malware).id for n in range(2)]

        with pytest.raises(IndicatorNotFound):
            IndicatorService.reassign(db, ids + ["missing"], c2)
        assert len(IndicatorService.list_by_category(db, malware)) == 2
        assert IndicatorService.list_by_category(db, c2) == []

    def test_unknown_target_moves_nothing(self, db, category_id):
        malware = category_id("malware")
        ids = [IndicatorService.insert(db, "10.0.0.1", malware).id]
        with pytest.raises(UnknownCategory):
            IndicatorService.reassign(db, ids, "missing")
        assert len(IndicatorService.list_by_category(db, malware)) == 1

    def test_empty_batch_still_validates_target(self, db, category_id):
        with pytest.raises(UnknownCategory):
            IndicatorService.reassign(db, [], "missing")
        assert IndicatorService.reassign(db, [], category_id("c2")) == 0

    def test_keeps_added_at(self, db, category_id):
        indicator = IndicatorService.insert(db, "10.0.0.1", category_id("malware"), now=1000.0)
        IndicatorService.reassign(db, [indicator.id], category_id("c2"))
        db.refresh(indicator)
        assert indicator.added_at == 1000.0
        assert indicator.last_modified_at > 1000.0


class TestBulkExtract:
    """Test promotion out of the holding category"""

    def test_moves_by_sub_type(self, db, category_id):
        holding = category_id("sources")
        IndicatorService.insert(db, "1.1.1.1", holding, source="abuseipdb", source_sub_type="malware")
        IndicatorService.insert(db, "2.2.2.2", holding, source="abuseipdb", source_sub_type="malware")
        IndicatorService.insert(db, "3.3.3.3", holding, source="abuseipdb", source_sub_type="c2")
        IndicatorService.insert(db, "4.4.4.4", holding, source="abuseipdb", source_sub_type="unclassified")

        moved = IndicatorService.bulk_extract(db, holding)

        assert moved == {"malware": 2, "c2": 1}
        assert [i.token for i in IndicatorService.list_by_category(db, holding)] == ["4.4.4.4"]
        assert len(IndicatorService.list_by_category(db, category_id("malware"))) == 2


class TestMutations:
    """Test description and reputation updates"""

    def test_update_description(self, db, category_id):
        indicator = IndicatorService.insert(db, "1.1.1.1", category_id("malware"), now=1000.0)
        updated = IndicatorService.update_description(db, indicator.id, "confirmed")
        assert updated.description == "confirmed"
        assert updated.last_modified_at > 1000.0

    def test_merge_reputation_is_additive(self, db, category_id):
        indicator = IndicatorService.insert(
            db, "1.1.1.1", category_id("sources"), source="abuseipdb",
            reputation={"abuseipdb": {"abuse_confidence": 95}},
        )
        IndicatorService.merge_reputation(db, indicator.id, "virustotal", {"malicious_percentage": 40.0})
        refreshed = IndicatorService.get(db, indicator.id)
        assert refreshed.reputation == {
            "abuseipdb": {"abuse_confidence": 95},
            "virustotal": {"malicious_percentage": 40.0},
        }

        IndicatorService.merge_reputation(db, indicator.id, "abuseipdb", {"abuse_confidence": 99})
        refreshed = IndicatorService.get(db, indicator.id)
        assert refreshed.reputation["abuseipdb"] == {"abuse_confidence": 99}
        assert "virustotal" in refreshed.reputation
