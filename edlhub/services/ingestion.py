"""
Ingestion merger: reconciles feed snapshots with the indicator store.

Dedup is by token across all sources, so a manually added IP blocks
re-ingestion of the same IP from a feed. Running merge() repeatedly over the
same snapshot adds nothing after the first run.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from sqlalchemy.orm import Session

from ..errors import AlreadyExists, AlreadyWhitelisted, UnknownCategory, ValidationError
from ..feeds.base import ExternalIndicator, FeedError, FeedProvider
from .indicators import IndicatorService, SOURCES
from .prometheus_metrics import prometheus_metrics

logger = logging.getLogger("edlhub.ingestion")

UNCLASSIFIED = "unclassified"

# (minimum score, sub-type), checked top-down
THREAT_THRESHOLDS = (
    (90, "malware"),
    (85, "c2"),
    (80, "bruteforce"),
)


def classify_threat(raw_score: Optional[float]) -> str:
    """Map a provider confidence (0-100) to a threat sub-type"""
    if raw_score is None:
        return UNCLASSIFIED
    for minimum, sub_type in THREAT_THRESHOLDS:
        if raw_score >= minimum:
            return sub_type
    return UNCLASSIFIED


@dataclass
class MergeResult:
    added: int = 0
    skipped: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"added_count": self.added, "skipped_count": self.skipped}


def _describe(ext: ExternalIndicator) -> str:
    if ext.raw_score is None:
        return f"{ext.source}: score n/a"
    if ext.source == "abuseipdb":
        return f"AbuseIPDB: {ext.raw_score:g}% confidence"
    if ext.source == "virustotal":
        return f"VirusTotal: {ext.raw_score:g}% malicious"
    return f"{ext.source}: score {ext.raw_score:g}"


def merge(db: Session, external: Iterable[ExternalIndicator], holding_category_id: str) -> MergeResult:
    """
    Insert feed indicators into the holding category.

    Whitelisted, already-present and malformed tokens are skipped, never
    treated as errors.
    """
    result = MergeResult()
    for ext in external:
        source = ext.source if ext.source in SOURCES else None
        if source is None:
            logger.warning("merge: unknown source %r for %s", ext.source, ext.token)
            result.skipped += 1
            continue
        try:
            IndicatorService.insert(
                db,
                token=ext.token,
                category_id=holding_category_id,
                description=_describe(ext),
                source=source,
                source_sub_type=classify_threat(ext.raw_score),
                reputation={source: dict(ext.metadata or {})},
                added_by=f"{source}_sync",
            )
        except AlreadyWhitelisted:
            prometheus_metrics.increment_merge_skipped(source, "whitelisted")
            result.skipped += 1
        except AlreadyExists:
            prometheus_metrics.increment_merge_skipped(source, "duplicate")
            result.skipped += 1
        except UnknownCategory:
            raise
        except ValidationError as e:
            prometheus_metrics.increment_merge_skipped(source, "invalid")
            logger.warning("merge: skipping invalid token %r: %s", ext.token, e)
            result.skipped += 1
        else:
            result.added += 1

    logger.info("merge finished: added=%d skipped=%d", result.added, result.skipped,
                extra={"component": "ingestion"})
    return result


def sync_provider(db: Session, provider: FeedProvider, holding_category_id: str) -> MergeResult:
    """Pull a provider snapshot and merge it"""
    try:
        snapshot = provider.fetch()
    except Exception:
        prometheus_metrics.increment_feed_sync_failures(provider.name)
        raise
    return merge(db, snapshot, holding_category_id)


def refresh_reputation(db: Session, indicator_id: str, providers: Iterable[FeedProvider]) -> Dict[str, str]:
    """
    Query every enabled provider for an indicator and merge the answers into
    its reputation. One provider failing leaves the others' data in place.
    Returns a per-provider status map.
    """
    indicator = IndicatorService.get(db, indicator_id)
    token = indicator.token
    statuses: Dict[str, str] = {}
    for provider in providers:
        if not provider.enabled:
            statuses[provider.name] = "disabled"
            continue
        try:
            data = provider.lookup(token)
        except FeedError as e:
            logger.warning("reputation refresh via %s failed for %s: %s", provider.name, token, e)
            statuses[provider.name] = "error"
            continue
        if data is None:
            statuses[provider.name] = "unknown"
            continue
        IndicatorService.merge_reputation(db, indicator_id, provider.name, data)
        statuses[provider.name] = "updated"
    return statuses
