from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from drivebroker.models.database import Base


class ShareLink(Base):
    __tablename__ = "shared_links"

    token = Column(String(64), primary_key=True)
    file_id = Column(String(36), ForeignKey("files.id", ondelete="CASCADE"), nullable=False, index=True)
    created_by = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    view_count = Column(Integer, nullable=False, default=0)

    file = relationship("FileMeta", back_populates="share_links")
