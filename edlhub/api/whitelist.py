"""
Whitelist endpoints
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ..db import get_db
from ..errors import NotFoundError
from ..schemas.whitelist import WhitelistCreate, WhitelistListResponse, WhitelistResponse
from ..services.whitelist import WhitelistService

router = APIRouter(tags=["Whitelist"])


@router.get("/whitelist", response_model=WhitelistListResponse)
def list_whitelist(db: Session = Depends(get_db)):
    entries = [WhitelistResponse(**e.to_dict()) for e in WhitelistService.list(db)]
    return WhitelistListResponse(entries=entries, total=len(entries))


@router.post("/whitelist", response_model=WhitelistResponse, status_code=201)
def add_whitelist_entry(payload: WhitelistCreate, db: Session = Depends(get_db)):
    entry = WhitelistService.add(db, payload.token, description=payload.description or "")
    return WhitelistResponse(**entry.to_dict())


@router.delete("/whitelist/{entry_id}", status_code=204)
def remove_whitelist_entry(entry_id: str, db: Session = Depends(get_db)):
    if not WhitelistService.remove(db, entry_id):
        raise NotFoundError(f"whitelist entry not found: {entry_id}")
    return Response(status_code=204)
