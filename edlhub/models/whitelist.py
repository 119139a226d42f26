import time
from sqlalchemy import Column, String, Text, Float
from edlhub.db import Base


class WhitelistEntry(Base):
    __tablename__ = "whitelist"

    id = Column(String(36), primary_key=True)
    token = Column(String(255), unique=True, nullable=False)
    kind = Column(String(16), nullable=False)
    description = Column(Text, nullable=False, default="")
    added_by = Column(String(64), nullable=False, default="manual")
    added_at = Column(Float, nullable=False, default=time.time)

    def to_dict(self):
        return {
            "id": self.id,
            "token": self.token,
            "kind": self.kind,
            "description": self.description,
            "added_by": self.added_by,
            "added_at": self.added_at,
        }
