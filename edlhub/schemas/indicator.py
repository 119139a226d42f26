from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class IndicatorCreate(BaseModel):
    token: str = Field(..., description="IP, CIDR, hostname or FQDN")
    category: str = Field(..., description="Category id or name")
    description: Optional[str] = Field("", description="Free-text note")


class IndicatorUpdate(BaseModel):
    description: Optional[str] = Field(None, description="Free-text note")
    category: Optional[str] = Field(None, description="Move to this category (id or name)")


class IndicatorResponse(BaseModel):
    id: str
    token: str
    kind: str
    category_id: str
    source: str
    source_sub_type: Optional[str] = None
    description: str
    reputation: Dict[str, Any] = Field(default_factory=dict)
    added_by: str
    added_at: float
    last_modified_at: float
    # Derived from the category policy at read time
    remaining_ttl: Optional[float] = None
    expires_at: Optional[float] = None
    ttl_status: str
    auto_remove: bool


class IndicatorListResponse(BaseModel):
    indicators: List[IndicatorResponse]
    total: int


class ReassignRequest(BaseModel):
    ids: List[str] = Field(..., min_length=1, description="Indicator ids to move")
    target_category: str = Field(..., description="Category id or name")


class ReassignResponse(BaseModel):
    moved: int
    target_category_id: str


class BulkExtractRequest(BaseModel):
    holding_category: Optional[str] = Field(None, description="Defaults to the feed holding category")


class BulkExtractResponse(BaseModel):
    moved: Dict[str, int]
    total: int


class ReputationRefreshResponse(BaseModel):
    indicator: IndicatorResponse
    providers: Dict[str, str]
