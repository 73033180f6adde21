# drivebroker/models/file.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from drivebroker.models.database import Base

# Reserved content type marking a folder record; never a real upload's MIME type
FOLDER_MIME_TYPE = "application/x-directory"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FileMeta(Base):
    """A file or folder in a user's tree.

    Files point at an object under ``storage_key``. Folders carry a synthetic
    key in the owner's namespace that is never backed by an object.
    """

    __tablename__ = "files"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)          # Display name
    size = Column(BigInteger, nullable=False, default=0)  # Size in bytes, 0 for folders
    mime_type = Column(String(255), nullable=False)
    storage_key = Column(String(1024), nullable=False, unique=True)
    parent_id = Column(String(36), ForeignKey("files.id", ondelete="CASCADE"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    # Many files → one owner (User)
    owner = relationship("User", back_populates="files")

    parent = relationship("FileMeta", remote_side=[id], back_populates="children")
    children = relationship("FileMeta", back_populates="parent", passive_deletes=True)

    share_links = relationship("ShareLink", back_populates="file", passive_deletes=True)

    @property
    def is_folder(self) -> bool:
        return self.mime_type == FOLDER_MIME_TYPE
