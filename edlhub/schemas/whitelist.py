from typing import List, Optional
from pydantic import BaseModel, Field


class WhitelistCreate(BaseModel):
    token: str = Field(..., description="IP, CIDR, hostname or FQDN that must never be published")
    description: Optional[str] = Field("", description="Why the token is protected")


class WhitelistResponse(BaseModel):
    id: str
    token: str
    kind: str
    description: str
    added_by: str
    added_at: float


class WhitelistListResponse(BaseModel):
    entries: List[WhitelistResponse]
    total: int
