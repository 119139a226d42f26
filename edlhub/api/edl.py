"""
Public EDL endpoint polled by firewalls
"""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from ..db import get_db
from ..services import edl

router = APIRouter(tags=["EDL"])

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


@router.get("/edl/{category}", response_class=PlainTextResponse)
def get_edl(category: str, db: Session = Depends(get_db)):
    """Newline-delimited indicator list for a category (id or name)"""
    return PlainTextResponse(content=edl.render(db, category), headers=NO_CACHE_HEADERS)
