import logging
import re
import time
import uuid
from typing import Dict, List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from ..errors import DuplicateCategory, ProtectedCategory, UnknownCategory, ValidationError
from ..models.category import Category
from ..models.indicator import Indicator
from .indicators import token_write_guard
from .prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

SLUG_RE = re.compile(r"^[a-z0-9][a-z0-9_-]{0,63}$")

SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400

# Fields an operator may edit; name is identity and locked on default categories
EDITABLE_FIELDS = ("name", "label", "description", "color", "icon", "is_active")


def to_expiration_seconds(seconds: Optional[int] = None, hours: Optional[float] = None,
                          days: Optional[float] = None) -> Optional[int]:
    """
    Convert an expiration given in seconds, hours or days to canonical seconds.

    At most one unit may be supplied. None everywhere means "never expires".
    """
    given = [(v, mult) for v, mult in ((seconds, 1), (hours, SECONDS_PER_HOUR), (days, SECONDS_PER_DAY))
             if v is not None]
    if not given:
        return None
    if len(given) > 1:
        raise ValidationError("specify expiration in exactly one unit")
    value, mult = given[0]
    total = int(round(value * mult))
    if total <= 0:
        raise ValidationError("expiration must be a positive duration")
    return total


class CategoryService:
    """Service for managing categories and their expiration policy"""

    @staticmethod
    def get(db: Session, category_id: str) -> Category:
        category = db.get(Category, category_id)
        if category is None:
            raise UnknownCategory(f"unknown category: {category_id}")
        return category

    @staticmethod
    def get_by_name(db: Session, name: str) -> Optional[Category]:
        return db.scalars(select(Category).where(Category.name == name)).first()

    @staticmethod
    def resolve(db: Session, id_or_name: str) -> Category:
        """Look a category up by id, falling back to its slug"""
        category = db.get(Category, id_or_name) or CategoryService.get_by_name(db, id_or_name)
        if category is None:
            raise UnknownCategory(f"unknown category: {id_or_name}")
        return category

    @staticmethod
    def list(db: Session, active_only: bool = False) -> List[Category]:
        query = select(Category).order_by(Category.is_default.desc(), Category.name)
        if active_only:
            query = query.where(Category.is_active.is_(True))
        return list(db.scalars(query).all())

    @staticmethod
    def indicator_counts(db: Session) -> Dict[str, int]:
        rows = db.execute(select(Indicator.category_id, func.count(Indicator.id)).group_by(Indicator.category_id))
        return {category_id: count for category_id, count in rows}

    @staticmethod
    def create(db: Session, name: str, label: str, description: str = "", color: Optional[str] = None,
               icon: Optional[str] = None, expiration_seconds: Optional[int] = None,
               auto_cleanup: bool = False, created_by: str = "admin") -> Category:
        """Create a new category"""
        name = (name or "").strip().lower()
        if not SLUG_RE.match(name):
            raise ValidationError(f"invalid category name: {name!r}")
        if not (label or "").strip():
            raise ValidationError("label is required")
        if expiration_seconds is not None and expiration_seconds <= 0:
            raise ValidationError("expiration must be a positive duration")
        if CategoryService.get_by_name(db, name):
            raise DuplicateCategory(f"category name already exists: {name}")

        category = Category(
            id=str(uuid.uuid4()),
            name=name,
            label=label.strip(),
            description=description or "",
            color=color or "bg-blue-500",
            icon=icon or "Shield",
            is_default=False,
            is_active=True,
            expiration_seconds=expiration_seconds,
            auto_cleanup=bool(auto_cleanup) and expiration_seconds is not None,
            created_by=created_by,
            created_at=time.time(),
        )
        db.add(category)
        db.commit()
        db.refresh(category)
        logger.info("Created category %s", name, extra={"category": name})
        return category

    @staticmethod
    def update(db: Session, category_id: str, update_data: dict) -> Category:
        """Update editable fields of a category"""
        category = CategoryService.get(db, category_id)

        if "name" in update_data and update_data["name"] is not None:
            new_name = update_data["name"].strip().lower()
            if new_name != category.name:
                if category.is_default:
                    raise ProtectedCategory("default categories cannot be renamed")
                if not SLUG_RE.match(new_name):
                    raise ValidationError(f"invalid category name: {new_name!r}")
                if CategoryService.get_by_name(db, new_name):
                    raise DuplicateCategory(f"category name already exists: {new_name}")
                category.name = new_name

        for field in EDITABLE_FIELDS:
            if field != "name" and update_data.get(field) is not None:
                setattr(category, field, update_data[field])

        db.commit()
        db.refresh(category)
        return category

    @staticmethod
    def set_policy(db: Session, category_id: str, expiration_seconds: Optional[int],
                   auto_cleanup: bool) -> Category:
        """Replace the expiration policy of a category"""
        category = CategoryService.get(db, category_id)
        if expiration_seconds is not None and expiration_seconds <= 0:
            raise ValidationError("expiration must be a positive duration")
        category.expiration_seconds = expiration_seconds
        # auto_cleanup without an expiration window is meaningless
        category.auto_cleanup = bool(auto_cleanup) and expiration_seconds is not None
        db.commit()
        db.refresh(category)
        logger.info("Updated expiration policy for %s: expiration_seconds=%s auto_cleanup=%s",
                    category.name, category.expiration_seconds, category.auto_cleanup)
        return category

    @staticmethod
    def toggle_active(db: Session, category_id: str) -> Category:
        category = CategoryService.get(db, category_id)
        category.is_active = not category.is_active
        db.commit()
        db.refresh(category)
        return category

    @staticmethod
    def delete(db: Session, category_id: str, migrate_to: Optional[str] = None) -> int:
        """
        Delete a category.

        Indicators are moved to migrate_to when given, otherwise they are
        deleted with the category. Returns the number of affected indicators.
        Runs under the token lock so no insert or reassign can target the
        category while it is being removed.
        """
        with token_write_guard():
            category = CategoryService.get(db, category_id)
            if category.is_default:
                raise ProtectedCategory(f"default category cannot be deleted: {category.name}")

            target = None
            if migrate_to:
                target = CategoryService.resolve(db, migrate_to)
                if target.id == category.id:
                    raise ValidationError("cannot migrate indicators into the category being deleted")

            name = category.name
            try:
                if target is not None:
                    affected = db.execute(
                        update(Indicator)
                        .where(Indicator.category_id == category.id)
                        .values(category_id=target.id, last_modified_at=time.time())
                    ).rowcount
                else:
                    affected = db.execute(delete(Indicator).where(Indicator.category_id == category.id)).rowcount
                db.delete(category)
                db.commit()
            except Exception:
                db.rollback()
                raise

        if target is None:
            prometheus_metrics.increment_indicators_deleted("category_deleted", affected)
        logger.info("Deleted category %s (%d indicators %s)", name, affected,
                    f"migrated to {target.name}" if target is not None else "deleted")
        return affected
