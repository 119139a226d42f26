import time
from sqlalchemy import Column, String, Text, Float, JSON, ForeignKey, Index
from edlhub.db import Base


class Indicator(Base):
    __tablename__ = "indicators"

    id = Column(String(36), primary_key=True)
    token = Column(String(255), unique=True, nullable=False)  # one category at a time
    kind = Column(String(16), nullable=False)  # ip | hostname | fqdn
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=False)
    source = Column(String(16), nullable=False, default="manual")  # manual | abuseipdb | virustotal
    source_sub_type = Column(String(32), nullable=True)  # threat label while in the holding category
    description = Column(Text, nullable=False, default="")
    reputation = Column(JSON, nullable=True)  # {"abuseipdb": {...}, "virustotal": {...}}
    added_by = Column(String(64), nullable=False, default="manual")
    added_at = Column(Float, nullable=False, default=time.time)  # Unix timestamp
    last_modified_at = Column(Float, nullable=False, default=time.time)

    __table_args__ = (
        Index("idx_indicators_category_added", "category_id", "added_at"),
        Index("idx_indicators_source", "source"),
    )

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            "id": self.id,
            "token": self.token,
            "kind": self.kind,
            "category_id": self.category_id,
            "source": self.source,
            "source_sub_type": self.source_sub_type,
            "description": self.description,
            "reputation": self.reputation or {},
            "added_by": self.added_by,
            "added_at": self.added_at,
            "last_modified_at": self.last_modified_at,
        }
