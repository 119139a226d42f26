from typing import Optional
from fastapi import APIRouter, Query

from ..logging_config import get_memory_handler

router = APIRouter(tags=["Logs"])


@router.get("/logs")
def get_logs(
    limit: int = Query(100, ge=1, le=1000),
    since: Optional[str] = Query(None, description="ISO timestamp lower bound"),
    level: Optional[str] = Query(None, description="Only this level (INFO, WARNING, ...)"),
):
    """Recent structured log records from the in-memory ring buffer"""
    logs = get_memory_handler().get_logs(since=since, level=level, limit=limit)
    return {"logs": logs, "total": len(logs)}
