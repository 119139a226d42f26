import logging
import threading
import time
import uuid
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import STORE_TIMEOUT_SECONDS
from ..errors import (
    AlreadyExists, AlreadyWhitelisted, IndicatorNotFound, StoreUnavailable, UnknownCategory, ValidationError,
)
from ..models.category import Category
from ..models.indicator import Indicator
from ..models.whitelist import WhitelistEntry
from .classifier import classify, normalize_token
from .notifier import EVENT_INDICATOR_ADDED, notifier
from .prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

SOURCE_MANUAL = "manual"
SOURCE_ABUSEIPDB = "abuseipdb"
SOURCE_VIRUSTOTAL = "virustotal"
SOURCES = (SOURCE_MANUAL, SOURCE_ABUSEIPDB, SOURCE_VIRUSTOTAL)

# Serialises "check whitelist + check token + insert" across the indicator
# and whitelist stores. The UNIQUE constraints cover other processes.
token_lock = threading.RLock()


class token_write_guard:
    """Acquire token_lock with a bounded wait"""

    def __enter__(self):
        if not token_lock.acquire(timeout=STORE_TIMEOUT_SECONDS):
            raise StoreUnavailable("timed out waiting for indicator store lock")
        return self

    def __exit__(self, *exc):
        token_lock.release()
        return False


def is_whitelisted(db: Session, token: str) -> bool:
    return db.scalars(select(WhitelistEntry.id).where(WhitelistEntry.token == token)).first() is not None


def token_exists(db: Session, token: str) -> bool:
    return db.scalars(select(Indicator.id).where(Indicator.token == token)).first() is not None


class IndicatorService:
    """Service for managing indicators"""

    @staticmethod
    def insert(
        db: Session,
        token: str,
        category_id: str,
        description: str = "",
        source: str = SOURCE_MANUAL,
        source_sub_type: Optional[str] = None,
        reputation: Optional[Dict[str, Any]] = None,
        added_by: Optional[str] = None,
        now: Optional[float] = None,
    ) -> Indicator:
        """
        Insert a new indicator.

        Raises AlreadyWhitelisted, AlreadyExists, UnknownCategory or
        ValidationError. On success an IndicatorAdded notification is
        submitted; its outcome never affects the insert.
        """
        if source not in SOURCES:
            raise ValidationError(f"unknown source: {source}")
        token = normalize_token(token)
        now = time.time() if now is None else now

        with token_write_guard():
            if db.get(Category, category_id) is None:
                prometheus_metrics.increment_indicators_rejected("unknown_category")
                raise UnknownCategory(f"unknown category: {category_id}")
            if is_whitelisted(db, token):
                prometheus_metrics.increment_indicators_rejected("whitelisted")
                raise AlreadyWhitelisted(f"{token} is whitelisted")
            if token_exists(db, token):
                prometheus_metrics.increment_indicators_rejected("duplicate")
                raise AlreadyExists(f"{token} already exists")

            indicator = Indicator(
                id=str(uuid.uuid4()),
                token=token,
                kind=classify(token),
                category_id=category_id,
                source=source,
                source_sub_type=source_sub_type,
                description=description or "",
                reputation=reputation or None,
                added_by=added_by or source,
                added_at=now,
                last_modified_at=now,
            )
            db.add(indicator)
            try:
                db.commit()
            except IntegrityError:
                # another process won the race on the UNIQUE token
                db.rollback()
                prometheus_metrics.increment_indicators_rejected("duplicate")
                raise AlreadyExists(f"{token} already exists")

        prometheus_metrics.increment_indicators_added(source)
        logger.info("Added indicator %s to category %s", token, category_id,
                    extra={"source": source, "kind": indicator.kind})
        notifier.notify(EVENT_INDICATOR_ADDED, indicator.to_dict())
        return indicator

    @staticmethod
    def get(db: Session, indicator_id: str) -> Indicator:
        indicator = db.get(Indicator, indicator_id)
        if indicator is None:
            raise IndicatorNotFound(f"indicator not found: {indicator_id}")
        return indicator

    @staticmethod
    def delete(db: Session, indicator_id: str, reason: str = "manual") -> bool:
        """Delete by id. Returns False if the indicator is already gone."""
        indicator = db.get(Indicator, indicator_id)
        if indicator is None:
            return False
        token = indicator.token
        db.delete(indicator)
        db.commit()
        prometheus_metrics.increment_indicators_deleted(reason)
        logger.info("Deleted indicator %s", token, extra={"reason": reason})
        return True

    @staticmethod
    def list_by_category(db: Session, category_id: str) -> List[Indicator]:
        """Indicators of a category, newest first"""
        query = (
            select(Indicator)
            .where(Indicator.category_id == category_id)
            .order_by(Indicator.added_at.desc(), Indicator.id)
        )
        return list(db.scalars(query).all())

    @staticmethod
    def list_all(db: Session, source: Optional[str] = None) -> List[Indicator]:
        query = select(Indicator).order_by(Indicator.added_at.desc(), Indicator.id)
        if source:
            query = query.where(Indicator.source == source)
        return list(db.scalars(query).all())

    @staticmethod
    def reassign(db: Session, ids: Iterable[str], target_category_id: str) -> int:
        """
        Move a set of indicators to another category.

        All-or-nothing: an unknown target or any unknown id rejects the whole
        batch and nothing is changed.
        """
        id_set = set(ids)
        with token_write_guard():
            if db.get(Category, target_category_id) is None:
                raise UnknownCategory(f"unknown category: {target_category_id}")
            if not id_set:
                return 0

            found = set(db.scalars(select(Indicator.id).where(Indicator.id.in_(id_set))).all())
            missing = id_set - found
            if missing:
                raise IndicatorNotFound(f"indicators not found: {', '.join(sorted(missing))}")

            try:
                moved = db.execute(
                    update(Indicator)
                    .where(Indicator.id.in_(id_set))
                    .values(category_id=target_category_id, last_modified_at=time.time())
                ).rowcount
                if moved != len(id_set):
                    # rows vanished between the check and the update (e.g. swept)
                    raise IndicatorNotFound("indicators changed during reassign")
                db.commit()
            except Exception:
                db.rollback()
                raise

        logger.info("Reassigned %d indicators to category %s", moved, target_category_id)
        return moved

    @staticmethod
    def bulk_extract(db: Session, holding_category_id: str) -> Dict[str, int]:
        """
        Promote holding-category indicators into the category named by their
        threat sub-type. Indicators whose sub-type has no category stay put.
        Returns moved counts per target category name.
        """
        with token_write_guard():
            if db.get(Category, holding_category_id) is None:
                raise UnknownCategory(f"unknown category: {holding_category_id}")

            by_name = {c.name: c.id for c in db.scalars(select(Category)).all()}
            moved: Dict[str, int] = {}
            now = time.time()
            try:
                for indicator in IndicatorService.list_by_category(db, holding_category_id):
                    target_id = by_name.get(indicator.source_sub_type or "")
                    if not target_id or target_id == holding_category_id:
                        continue
                    indicator.category_id = target_id
                    indicator.last_modified_at = now
                    moved[indicator.source_sub_type] = moved.get(indicator.source_sub_type, 0) + 1
                db.commit()
            except Exception:
                db.rollback()
                raise

        logger.info("Bulk extract moved %d indicators", sum(moved.values()), extra={"moved": moved})
        return moved

    @staticmethod
    def update_description(db: Session, indicator_id: str, description: str) -> Indicator:
        indicator = IndicatorService.get(db, indicator_id)
        indicator.description = description or ""
        indicator.last_modified_at = time.time()
        db.commit()
        db.refresh(indicator)
        return indicator

    @staticmethod
    def merge_reputation(db: Session, indicator_id: str, provider: str, data: Dict[str, Any]) -> Indicator:
        """Attach one provider's reputation data without touching the others"""
        indicator = IndicatorService.get(db, indicator_id)
        reputation = dict(indicator.reputation or {})
        reputation[provider] = data
        # reassign so the JSON column is flagged dirty
        indicator.reputation = reputation
        indicator.last_modified_at = time.time()
        db.commit()
        db.refresh(indicator)
        return indicator
