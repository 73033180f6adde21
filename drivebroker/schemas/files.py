from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from drivebroker.services.link_validator import as_utc

# stored naive in SQLite; always rendered with an explicit UTC offset
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class FileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    size: int
    mime_type: str = Field(serialization_alias="mimeType")
    storage_key: str = Field(serialization_alias="key")
    parent_id: str | None = Field(serialization_alias="parentId")
    is_folder: bool = Field(serialization_alias="isFolder")
    created_at: UtcDatetime = Field(serialization_alias="createdAt")
    updated_at: UtcDatetime = Field(serialization_alias="updatedAt")



class FileCreate(BaseModel):
    """Metadata registered by the client after a direct upload."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1, max_length=255)
    size: int = Field(ge=0)
    mime_type: str = Field(alias="mimeType", min_length=1, max_length=255)
    key: str = Field(min_length=1, max_length=1024)
    parent_id: str | None = Field(default=None, alias="parentId")


class FolderCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1, max_length=255)
    parent_id: str | None = Field(default=None, alias="parentId")


class FileUpdate(BaseModel):
    """Rename (``name``) and/or move (``parentId``; explicit null means root)."""

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = Field(default=None, max_length=255)
    parent_id: str | None = Field(default=None, alias="parentId")


class DeleteOut(BaseModel):
    success: bool
    records_deleted: int = Field(serialization_alias="recordsDeleted")
    links_deleted: int = Field(serialization_alias="linksDeleted")
    failed_keys: list[str] = Field(serialization_alias="failedKeys")


class ShareCreate(BaseModel):
    days: int | None = None


class ShareOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    token: str
    file_id: str = Field(serialization_alias="fileId")
    expires_at: UtcDatetime = Field(serialization_alias="expiresAt")
    view_count: int = Field(serialization_alias="viewCount")
