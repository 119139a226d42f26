"""
Indicator endpoints

Every indicator in a response carries its live TTL view, computed from the
category policy at request time.
"""

from typing import Dict, Optional
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ..config import HOLDING_CATEGORY
from ..db import get_db
from ..errors import IndicatorNotFound
from ..feeds import providers
from ..models.category import Category
from ..schemas.indicator import (
    BulkExtractRequest, BulkExtractResponse, IndicatorCreate, IndicatorListResponse, IndicatorResponse,
    IndicatorUpdate, ReassignRequest, ReassignResponse, ReputationRefreshResponse,
)
from ..services.categories import CategoryService
from ..services.expiration import ttl_fields
from ..services.indicators import IndicatorService, SOURCE_MANUAL
from ..services.ingestion import refresh_reputation

router = APIRouter(tags=["Indicators"])


def _to_response(indicator, category: Category, now: Optional[float] = None) -> IndicatorResponse:
    return IndicatorResponse(**indicator.to_dict(), **ttl_fields(indicator, category, now))


@router.get("/indicators", response_model=IndicatorListResponse)
def list_indicators(
    category: Optional[str] = Query(None, description="Category id or name"),
    source: Optional[str] = Query(None, description="Filter by source (manual, abuseipdb, virustotal)"),
    db: Session = Depends(get_db),
):
    categories: Dict[str, Category] = {c.id: c for c in CategoryService.list(db)}
    if category:
        resolved = CategoryService.resolve(db, category)
        items = IndicatorService.list_by_category(db, resolved.id)
        if source:
            items = [i for i in items if i.source == source]
    else:
        items = IndicatorService.list_all(db, source=source)

    indicators = [_to_response(i, categories[i.category_id]) for i in items]
    return IndicatorListResponse(indicators=indicators, total=len(indicators))


@router.post("/indicators", response_model=IndicatorResponse, status_code=201)
def create_indicator(payload: IndicatorCreate, db: Session = Depends(get_db)):
    """Add an indicator manually"""
    category = CategoryService.resolve(db, payload.category)
    indicator = IndicatorService.insert(
        db,
        token=payload.token,
        category_id=category.id,
        description=payload.description or "",
        source=SOURCE_MANUAL,
        added_by="manual",
    )
    return _to_response(indicator, category)


@router.post("/indicators/reassign", response_model=ReassignResponse)
def reassign_indicators(payload: ReassignRequest, db: Session = Depends(get_db)):
    """Move indicators to another category; nothing moves unless all of them can"""
    target = CategoryService.resolve(db, payload.target_category)
    moved = IndicatorService.reassign(db, payload.ids, target.id)
    return ReassignResponse(moved=moved, target_category_id=target.id)


@router.post("/indicators/bulk-extract", response_model=BulkExtractResponse)
def bulk_extract(payload: Optional[BulkExtractRequest] = None, db: Session = Depends(get_db)):
    """Promote feed indicators from the holding category by threat sub-type"""
    holding_name = (payload.holding_category if payload else None) or HOLDING_CATEGORY
    holding = CategoryService.resolve(db, holding_name)
    moved = IndicatorService.bulk_extract(db, holding.id)
    return BulkExtractResponse(moved=moved, total=sum(moved.values()))


@router.get("/indicators/{indicator_id}", response_model=IndicatorResponse)
def get_indicator(indicator_id: str, db: Session = Depends(get_db)):
    indicator = IndicatorService.get(db, indicator_id)
    return _to_response(indicator, CategoryService.get(db, indicator.category_id))


@router.patch("/indicators/{indicator_id}", response_model=IndicatorResponse)
def update_indicator(indicator_id: str, payload: IndicatorUpdate, db: Session = Depends(get_db)):
    indicator = IndicatorService.get(db, indicator_id)
    if payload.category is not None:
        target = CategoryService.resolve(db, payload.category)
        IndicatorService.reassign(db, [indicator_id], target.id)
    if payload.description is not None:
        IndicatorService.update_description(db, indicator_id, payload.description)
    db.refresh(indicator)
    return _to_response(indicator, CategoryService.get(db, indicator.category_id))


@router.delete("/indicators/{indicator_id}", status_code=204)
def delete_indicator(indicator_id: str, db: Session = Depends(get_db)):
    if not IndicatorService.delete(db, indicator_id):
        raise IndicatorNotFound(f"indicator not found: {indicator_id}")
    return Response(status_code=204)


@router.post("/indicators/{indicator_id}/reputation", response_model=ReputationRefreshResponse)
def refresh_indicator_reputation(indicator_id: str, db: Session = Depends(get_db)):
    """Query every configured provider and merge their answers into the indicator"""
    statuses = refresh_reputation(db, indicator_id, providers.values())
    indicator = IndicatorService.get(db, indicator_id)
    db.refresh(indicator)
    return ReputationRefreshResponse(
        indicator=_to_response(indicator, CategoryService.get(db, indicator.category_id)),
        providers=statuses,
    )
