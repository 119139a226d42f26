"""
EDL publisher: renders a category as a newline-delimited firewall feed.

The whitelist is re-applied on every render because it may have been
populated after an indicator was stored. Nothing is cached.
"""

from typing import List

from sqlalchemy.orm import Session

from ..config import EDL_EMPTY_BODY
from .categories import CategoryService
from .indicators import IndicatorService
from .prometheus_metrics import prometheus_metrics
from .whitelist import WhitelistService


def edl_tokens(db: Session, category_id: str) -> List[str]:
    """Publishable tokens of a category, newest first"""
    whitelisted = WhitelistService.tokens(db)
    return [
        indicator.token
        for indicator in IndicatorService.list_by_category(db, category_id)
        if indicator.token not in whitelisted
    ]


def render(db: Session, category: str) -> str:
    """
    Render the feed for a category given by id or name.

    An empty feed renders a single comment line so EDL parsers that reject
    empty bodies do not treat it as a fetch failure.
    """
    resolved = CategoryService.resolve(db, category)
    tokens = edl_tokens(db, resolved.id)
    prometheus_metrics.increment_edl_renders(resolved.name)
    if not tokens:
        return EDL_EMPTY_BODY + "\n"
    return "\n".join(tokens) + "\n"
