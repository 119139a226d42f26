import time
from sqlalchemy import Column, String, Text, Integer, Boolean, Float
from edlhub.db import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True)
    name = Column(String(64), unique=True, index=True, nullable=False)  # slug, used in /edl/{name}
    label = Column(String(128), nullable=False)
    description = Column(Text, nullable=False, default="")
    color = Column(String(32), nullable=False, default="bg-blue-500")
    icon = Column(String(32), nullable=False, default="Shield")
    is_default = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    expiration_seconds = Column(Integer, nullable=True)  # NULL = never expires
    auto_cleanup = Column(Boolean, nullable=False, default=False)
    created_by = Column(String(64), nullable=False, default="system")
    created_at = Column(Float, nullable=False, default=time.time)

    @property
    def effective_auto_cleanup(self) -> bool:
        """auto_cleanup only counts when an expiration window is set"""
        return bool(self.auto_cleanup) and self.expiration_seconds is not None

    def to_dict(self, indicator_count=None):
        """Convert to dictionary for API responses"""
        data = {
            "id": self.id,
            "name": self.name,
            "label": self.label,
            "description": self.description,
            "color": self.color,
            "icon": self.icon,
            "is_default": self.is_default,
            "is_active": self.is_active,
            "expiration_seconds": self.expiration_seconds,
            "auto_cleanup": self.effective_auto_cleanup,
            "created_by": self.created_by,
            "created_at": self.created_at,
        }
        if indicator_count is not None:
            data["indicator_count"] = indicator_count
        return data
