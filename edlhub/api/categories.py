"""
Category management endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..schemas.category import (
    CategoryCreate, CategoryDeleteResponse, CategoryListResponse, CategoryResponse, CategoryUpdate,
)
from ..services.categories import CategoryService, to_expiration_seconds

router = APIRouter(tags=["Categories"])


def _expiration_from(payload) -> Optional[int]:
    return to_expiration_seconds(
        seconds=payload.expiration_seconds,
        hours=payload.expiration_hours,
        days=payload.expiration_days,
    )


def _response(db: Session, category) -> CategoryResponse:
    counts = CategoryService.indicator_counts(db)
    return CategoryResponse(**category.to_dict(indicator_count=counts.get(category.id, 0)))


@router.get("/categories", response_model=CategoryListResponse)
def list_categories(
    active_only: bool = Query(False, description="Only return active categories"),
    db: Session = Depends(get_db),
):
    """List categories with their indicator counts"""
    counts = CategoryService.indicator_counts(db)
    categories = [
        CategoryResponse(**c.to_dict(indicator_count=counts.get(c.id, 0)))
        for c in CategoryService.list(db, active_only=active_only)
    ]
    return CategoryListResponse(categories=categories, total=len(categories))


@router.post("/categories", response_model=CategoryResponse, status_code=201)
def create_category(payload: CategoryCreate, db: Session = Depends(get_db)):
    """Create a category; expiration is converted to seconds here and nowhere else"""
    category = CategoryService.create(
        db,
        name=payload.name,
        label=payload.label,
        description=payload.description or "",
        color=payload.color,
        icon=payload.icon,
        expiration_seconds=_expiration_from(payload),
        auto_cleanup=bool(payload.auto_cleanup),
    )
    return _response(db, category)


@router.get("/categories/{category_id}", response_model=CategoryResponse)
def get_category(category_id: str, db: Session = Depends(get_db)):
    return _response(db, CategoryService.resolve(db, category_id))


@router.put("/categories/{category_id}", response_model=CategoryResponse)
def update_category(category_id: str, payload: CategoryUpdate, db: Session = Depends(get_db)):
    """
    Update a category.

    Policy fields are only touched when present in the request: an
    expiration in any unit replaces the window, `clear_expiration` removes
    it, and `auto_cleanup` alone keeps the current window.
    """
    category = CategoryService.resolve(db, category_id)
    # reject a bad policy before any field edit is committed
    new_expiration = _expiration_from(payload) if payload.has_expiration() else None
    fields = payload.model_dump(exclude_unset=True)
    category = CategoryService.update(db, category.id, fields)

    if payload.has_expiration() or payload.clear_expiration or payload.auto_cleanup is not None:
        if payload.has_expiration():
            expiration = new_expiration
        elif payload.clear_expiration:
            expiration = None
        else:
            expiration = category.expiration_seconds
        auto_cleanup = category.auto_cleanup if payload.auto_cleanup is None else payload.auto_cleanup
        category = CategoryService.set_policy(db, category.id, expiration, auto_cleanup)

    return _response(db, category)


@router.delete("/categories/{category_id}", response_model=CategoryDeleteResponse)
def delete_category(
    category_id: str,
    migrate_to: Optional[str] = Query(None, description="Move indicators here instead of deleting them"),
    db: Session = Depends(get_db),
):
    category = CategoryService.resolve(db, category_id)
    name = category.name
    affected = CategoryService.delete(db, category.id, migrate_to=migrate_to)
    return CategoryDeleteResponse(deleted=name, affected_indicators=affected, migrated_to=migrate_to)


@router.post("/categories/{category_id}/toggle", response_model=CategoryResponse)
def toggle_category(category_id: str, db: Session = Depends(get_db)):
    category = CategoryService.resolve(db, category_id)
    return _response(db, CategoryService.toggle_active(db, category.id))
