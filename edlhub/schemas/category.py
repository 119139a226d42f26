from typing import Optional, List
from pydantic import BaseModel, Field


class ExpirationFields(BaseModel):
    """Expiration may be given in one unit; it is stored in seconds"""
    expiration_seconds: Optional[int] = Field(None, gt=0, description="Expiration window in seconds")
    expiration_hours: Optional[float] = Field(None, gt=0, description="Expiration window in hours")
    expiration_days: Optional[float] = Field(None, gt=0, description="Expiration window in days")
    auto_cleanup: Optional[bool] = Field(None, description="Remove expired indicators automatically")

    def has_expiration(self) -> bool:
        return any(v is not None for v in (self.expiration_seconds, self.expiration_hours, self.expiration_days))


class CategoryCreate(ExpirationFields):
    name: str = Field(..., description="URL slug, used in /edl/{name}")
    label: str = Field(..., description="Human-readable label")
    description: Optional[str] = Field("", description="What the category blocks")
    color: Optional[str] = Field(None, description="UI color class")
    icon: Optional[str] = Field(None, description="UI icon name")


class CategoryUpdate(ExpirationFields):
    name: Optional[str] = Field(None, description="New slug (not allowed for default categories)")
    label: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    is_active: Optional[bool] = None
    clear_expiration: bool = Field(False, description="Remove the expiration window (never expire)")


class CategoryResponse(BaseModel):
    id: str
    name: str
    label: str
    description: str
    color: str
    icon: str
    is_default: bool
    is_active: bool
    expiration_seconds: Optional[int]
    auto_cleanup: bool
    created_by: str
    created_at: float
    indicator_count: Optional[int] = None


class CategoryListResponse(BaseModel):
    categories: List[CategoryResponse]
    total: int


class CategoryDeleteResponse(BaseModel):
    deleted: str
    affected_indicators: int
    migrated_to: Optional[str] = None
