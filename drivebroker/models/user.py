import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import relationship

from drivebroker.models.database import Base


class User(Base):
    __tablename__ = "users"

    # The id is the caller identity and the first segment of every storage key
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    username = Column(String(50), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    # One user → many files
    files = relationship("FileMeta", back_populates="owner", passive_deletes=True)
