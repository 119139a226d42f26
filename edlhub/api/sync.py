"""
Feed sync and expiration sweep triggers
"""

import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..config import HOLDING_CATEGORY
from ..db import get_db
from ..feeds import FeedError, get_provider, providers
from ..services.categories import CategoryService
from ..services.expiration import run_sweep
from ..services.ingestion import sync_provider

router = APIRouter(tags=["Sync"])
logger = logging.getLogger("edlhub.sync")


@router.post("/sync/{provider}")
def sync_feed(provider: str, db: Session = Depends(get_db)):
    """Pull one provider now and merge it into the holding category"""
    try:
        feed = get_provider(provider)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown provider: {provider}")

    if not feed.enabled:
        raise HTTPException(status_code=400, detail=f"Provider {provider} has no API key configured")

    holding = CategoryService.resolve(db, HOLDING_CATEGORY)
    try:
        result = sync_provider(db, feed, holding.id)
    except FeedError as e:
        logger.warning("sync of %s failed: %s", provider, e)
        raise HTTPException(status_code=502, detail=f"Provider {provider} failed: {e}")

    return {"provider": provider, "category": holding.name, **result.to_dict()}


@router.get("/sync/providers")
def list_providers():
    return {"providers": [p.get_status() for p in providers.values()]}


@router.post("/expiration/sweep")
def trigger_sweep():
    """Run an expiration sweep immediately"""
    return run_sweep().to_dict()
