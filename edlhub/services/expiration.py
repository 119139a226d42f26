"""
Expiration engine.

Remaining TTL is always derived from (now, added_at, category policy); nothing
about expiry is persisted. The sweep is the only code path that removes
expired indicators, and only for categories whose policy enables
auto-cleanup. Everywhere else expiry is advisory.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import EXPIRING_WINDOW_RATIO
from ..db import SessionLocal
from ..models.category import Category
from ..models.indicator import Indicator
from .prometheus_metrics import prometheus_metrics

logger = logging.getLogger("edlhub.expiration")

STATUS_UNBOUNDED = "unbounded"
STATUS_ALIVE = "alive"
STATUS_EXPIRING = "expiring"
STATUS_EXPIRED = "expired"


def remaining_ttl(indicator: Indicator, category: Category, now: Optional[float] = None) -> Optional[float]:
    """
    Seconds until the indicator expires under its category's policy.

    None means unbounded (the category has no expiration). Zero or negative
    means expired.
    """
    if category.expiration_seconds is None:
        return None
    now = time.time() if now is None else now
    return indicator.added_at + category.expiration_seconds - now


def is_expired(indicator: Indicator, category: Category, now: Optional[float] = None) -> bool:
    ttl = remaining_ttl(indicator, category, now)
    return ttl is not None and ttl <= 0


def ttl_status(indicator: Indicator, category: Category, now: Optional[float] = None) -> str:
    ttl = remaining_ttl(indicator, category, now)
    if ttl is None:
        return STATUS_UNBOUNDED
    if ttl <= 0:
        return STATUS_EXPIRED
    if ttl <= category.expiration_seconds * EXPIRING_WINDOW_RATIO:
        return STATUS_EXPIRING
    return STATUS_ALIVE


def ttl_fields(indicator: Indicator, category: Category, now: Optional[float] = None) -> Dict[str, Any]:
    """TTL view of an indicator for API responses"""
    now = time.time() if now is None else now
    ttl = remaining_ttl(indicator, category, now)
    return {
        "remaining_ttl": ttl,
        "expires_at": None if ttl is None else indicator.added_at + category.expiration_seconds,
        "ttl_status": ttl_status(indicator, category, now),
        "auto_remove": category.effective_auto_cleanup,
    }


@dataclass
class SweepResult:
    removed: int = 0
    categories: int = 0
    failed: List[str] = field(default_factory=list)
    removed_by_category: Dict[str, int] = field(default_factory=dict)

    @property
    def outcome(self) -> str:
        if not self.failed:
            return "ok"
        return "partial" if len(self.failed) < self.categories else "failed"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "removed": self.removed,
            "categories": self.categories,
            "failed": self.failed,
            "removed_by_category": self.removed_by_category,
            "outcome": self.outcome,
        }


def _sweep_category(db: Session, category_id: str, expiration_seconds: int, now: float) -> int:
    cutoff = now - expiration_seconds
    # rows moved out of the category since the policy was read do not match
    removed = db.execute(
        delete(Indicator).where(Indicator.category_id == category_id, Indicator.added_at <= cutoff)
    ).rowcount
    db.commit()
    return removed


def sweep(db: Session, now: Optional[float] = None) -> SweepResult:
    """
    Remove expired indicators from every auto-cleanup category.

    Each category is its own transaction: a failure rolls that category back,
    is recorded in the result, and the sweep moves on.
    """
    now = time.time() if now is None else now
    result = SweepResult()
    # plain tuples so a rollback mid-sweep cannot expire what we iterate over
    policies = db.execute(
        select(Category.id, Category.name, Category.expiration_seconds)
        .where(Category.auto_cleanup.is_(True), Category.expiration_seconds.is_not(None))
    ).all()

    for category_id, name, expiration_seconds in policies:
        result.categories += 1
        try:
            removed = _sweep_category(db, category_id, expiration_seconds, now)
        except SQLAlchemyError:
            db.rollback()
            result.failed.append(name)
            logger.exception("Expiration sweep failed for category %s", name)
            continue
        if removed:
            result.removed += removed
            result.removed_by_category[name] = removed
            logger.info("Expired %d indicators from %s", removed, name,
                        extra={"component": "expiration", "category": name})

    prometheus_metrics.increment_indicators_deleted("expired", result.removed)
    return result


def run_sweep() -> SweepResult:
    """Sweep with a fresh session; used by the background sweeper"""
    started = time.time()
    try:
        with SessionLocal() as db:
            result = sweep(db, now=started)
    except Exception:
        prometheus_metrics.record_sweep("failed", time.time() - started, time.time())
        raise
    finished = time.time()
    prometheus_metrics.record_sweep(result.outcome, finished - started, finished)
    return result
