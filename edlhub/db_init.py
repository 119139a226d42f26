import logging
import time
import uuid
from threading import Lock

from sqlalchemy import select

from .config import DEFAULT_CATEGORIES
from .db import Base, engine, SessionLocal

logger = logging.getLogger("edlhub.db")

_initialized = False
_init_lock = Lock()


def seed_default_categories(db) -> int:
    """Insert missing default categories. Returns number created."""
    from .models.category import Category

    existing = set(db.scalars(select(Category.name)).all())
    created = 0
    now = time.time()
    for name, label, description, color, icon in DEFAULT_CATEGORIES:
        if name in existing:
            continue
        db.add(Category(
            id=str(uuid.uuid4()),
            name=name,
            label=label,
            description=description,
            color=color,
            icon=icon,
            is_default=True,
            is_active=True,
            created_by="system",
            created_at=now,
        ))
        created += 1
    db.commit()
    return created


def init_schema_and_seed_if_needed(force: bool = False) -> None:
    """
    Ensure DB schema exists and default categories are seeded.
    Safe to call multiple times.
    """
    global _initialized
    if _initialized and not force:
        return
    with _init_lock:
        if _initialized and not force:
            return

        # Import all models to ensure they're registered with Base.metadata
        import edlhub.models  # noqa: F401

        Base.metadata.create_all(bind=engine)
        with SessionLocal() as db:
            created = seed_default_categories(db)
        if created:
            logger.info("Seeded %d default categories", created)

        _initialized = True
