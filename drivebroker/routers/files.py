import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from drivebroker.core.config import get_settings
from drivebroker.core.errors import BrokerError, NotFound
from drivebroker.models.database import get_db
from drivebroker.routers.auth import get_current_user_id
from drivebroker.routers.broker import get_broker
from drivebroker.schemas.files import (
    DeleteOut,
    FileCreate,
    FileOut,
    FileUpdate,
    FolderCreate,
    ShareCreate,
    ShareOut,
)
from drivebroker.services import metadata
from drivebroker.services.broker import AccessBroker

logger = logging.getLogger(__name__)

router = APIRouter(tags=["files"])


# --- list a folder, or search the whole tree ---
@router.get("/files", response_model=list[FileOut])
def list_files(
    parent_id: str | None = None,
    search: str | None = None,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    if search and search.strip():
        return metadata.search(db, user_id, search)
    return metadata.list_children(db, user_id, parent_id)


# --- register a file the client uploaded through a signed URL ---
@router.post("/files", response_model=FileOut, status_code=201)
def create_file(
    payload: FileCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return metadata.create_file_record(
        db,
        owner_id=user_id,
        name=payload.name,
        size=payload.size,
        mime_type=payload.mime_type,
        storage_key=payload.key,
        parent_id=payload.parent_id,
    )


@router.post("/folders", response_model=FileOut, status_code=201)
def create_folder(
    payload: FolderCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return metadata.create_folder(db, user_id, payload.name, payload.parent_id)


# --- rename and/or move ---
@router.patch("/files/{file_id}", response_model=FileOut)
def update_file(
    file_id: str,
    payload: FileUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return metadata.update(
        db,
        user_id,
        file_id,
        new_name=payload.name,
        reparent="parent_id" in payload.model_fields_set,
        target_parent_id=payload.parent_id,
    )


# --- delete a file or a whole folder tree ---
@router.delete("/files/{file_id}", response_model=DeleteOut)
def delete_file(
    file_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    broker: AccessBroker = Depends(get_broker),
):
    subtree = metadata.collect_subtree(db, user_id, [file_id])

    # Blobs first, best effort: an orphaned object is a leak, not a breach
    failed_keys = []
    for key in subtree.blob_keys:
        try:
            broker.delete(user_id, key)
        except BrokerError as exc:
            logger.warning("Could not delete object %s, continuing: %s", key, exc.message)
            failed_keys.append(key)

    report = metadata.delete_subtree(db, subtree)
    logger.info(
        "Deleted %d records and %d share links under %s",
        report.records_deleted,
        report.links_deleted,
        file_id,
    )
    return DeleteOut(
        success=True,
        records_deleted=report.records_deleted,
        links_deleted=report.links_deleted,
        failed_keys=failed_keys,
    )


# --- share links ---
@router.post("/files/{file_id}/share", response_model=ShareOut)
def share_file(
    file_id: str,
    payload: ShareCreate | None = None,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    days = payload.days if payload and payload.days is not None else get_settings().share_link_default_days
    link, _created = metadata.get_or_create_share_link(db, user_id, file_id, days)
    return link


@router.get("/files/{file_id}/share", response_model=ShareOut)
def get_share_link(
    file_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    record = metadata.get_owned(db, user_id, file_id)
    link = metadata.get_active_share_link(db, record.id)
    if link is None:
        raise NotFound("No active share link")
    return link
