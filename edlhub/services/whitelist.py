import logging
import time
import uuid
from typing import List, Set

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import AlreadyExists, AlreadyWhitelisted
from ..models.whitelist import WhitelistEntry
from .classifier import classify, normalize_token
from .indicators import token_exists, token_write_guard

logger = logging.getLogger(__name__)


class WhitelistService:
    """Protected tokens that may never be published"""

    @staticmethod
    def add(db: Session, token: str, description: str = "", added_by: str = "manual") -> WhitelistEntry:
        """
        Whitelist a token.

        Raises AlreadyWhitelisted if present, AlreadyExists if the token is
        currently an indicator in any category.
        """
        token = normalize_token(token)
        with token_write_guard():
            if db.scalars(select(WhitelistEntry.id).where(WhitelistEntry.token == token)).first():
                raise AlreadyWhitelisted(f"{token} is already whitelisted")
            if token_exists(db, token):
                raise AlreadyExists(f"{token} exists as an indicator; delete it before whitelisting")

            entry = WhitelistEntry(
                id=str(uuid.uuid4()),
                token=token,
                kind=classify(token),
                description=description or "",
                added_by=added_by or "manual",
                added_at=time.time(),
            )
            db.add(entry)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                raise AlreadyWhitelisted(f"{token} is already whitelisted")

        logger.info("Whitelisted %s", token)
        return entry

    @staticmethod
    def remove(db: Session, entry_id: str) -> bool:
        entry = db.get(WhitelistEntry, entry_id)
        if entry is None:
            return False
        token = entry.token
        db.delete(entry)
        db.commit()
        logger.info("Removed %s from whitelist", token)
        return True

    @staticmethod
    def list(db: Session) -> List[WhitelistEntry]:
        return list(db.scalars(select(WhitelistEntry).order_by(WhitelistEntry.added_at.desc())).all())

    @staticmethod
    def tokens(db: Session) -> Set[str]:
        return set(db.scalars(select(WhitelistEntry.token)).all())
