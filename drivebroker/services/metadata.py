"""Relational metadata: file/folder tree and share links.

Every query is scoped to the owner. Navigation is stateless: a folder view
is just "records whose parent is X".
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from drivebroker.core.errors import BadRequest, NotFound, UpstreamFailure
from drivebroker.models.file import FOLDER_MIME_TYPE, FileMeta
from drivebroker.models.share_link import ShareLink
from drivebroker.services.keys import build_folder_key, owns_key
from drivebroker.services.link_validator import utcnow

logger = logging.getLogger(__name__)

SHARE_LINK_DAYS = (1, 7, 30)


@dataclass
class Subtree:
    """Records reachable from a set of roots, grouped by depth."""

    levels: list[list[str]] = field(default_factory=list)
    blob_keys: list[str] = field(default_factory=list)
    file_count: int = 0
    folder_count: int = 0

    @property
    def record_ids(self) -> list[str]:
        return [record_id for level in self.levels for record_id in level]


@dataclass(frozen=True)
class DeletionReport:
    records_deleted: int
    links_deleted: int


def _commit(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise BadRequest("Conflicting record") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Metadata write failed")
        raise UpstreamFailure("Database unavailable") from exc


def _clean_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise BadRequest("Invalid name")
    if "/" in cleaned or "\\" in cleaned:
        raise BadRequest("Name may not contain path separators")
    return cleaned


def get_owned(db: Session, owner_id: str, record_id: str) -> FileMeta:
    record = (
        db.query(FileMeta)
        .filter(FileMeta.id == record_id, FileMeta.owner_id == owner_id)
        .first()
    )
    if record is None:
        raise NotFound("File not found")
    return record


def _owned_folder(db: Session, owner_id: str, folder_id: str) -> FileMeta:
    folder = get_owned(db, owner_id, folder_id)
    if not folder.is_folder:
        raise BadRequest("Target is not a folder")
    return folder


def create_file_record(
    db: Session,
    owner_id: str,
    name: str,
    size: int,
    mime_type: str,
    storage_key: str,
    parent_id: str | None = None,
) -> FileMeta:
    """Register an object the client has just uploaded."""
    if not owns_key(owner_id, storage_key):
        raise BadRequest("Storage key does not belong to caller")
    if size < 0:
        raise BadRequest("Invalid size")
    if not mime_type or mime_type == FOLDER_MIME_TYPE:
        raise BadRequest("Invalid content type")
    if parent_id is not None:
        _owned_folder(db, owner_id, parent_id)
    if db.query(FileMeta.id).filter(FileMeta.storage_key == storage_key).first():
        raise BadRequest("Storage key already registered")

    record = FileMeta(
        owner_id=owner_id,
        name=_clean_name(name),
        size=size,
        mime_type=mime_type,
        storage_key=storage_key,
        parent_id=parent_id,
    )
    db.add(record)
    _commit(db)
    db.refresh(record)
    return record


def create_folder(db: Session, owner_id: str, name: str, parent_id: str | None = None) -> FileMeta:
    if parent_id is not None:
        _owned_folder(db, owner_id, parent_id)
    folder = FileMeta(
        owner_id=owner_id,
        name=_clean_name(name),
        size=0,
        mime_type=FOLDER_MIME_TYPE,
        storage_key=build_folder_key(owner_id),
        parent_id=parent_id,
    )
    db.add(folder)
    _commit(db)
    db.refresh(folder)
    return folder


def list_children(db: Session, owner_id: str, parent_id: str | None = None) -> list[FileMeta]:
    query = db.query(FileMeta).filter(FileMeta.owner_id == owner_id)
    if parent_id is None:
        query = query.filter(FileMeta.parent_id.is_(None))
    else:
        _owned_folder(db, owner_id, parent_id)
        query = query.filter(FileMeta.parent_id == parent_id)
    return sorted(query.all(), key=lambda r: (not r.is_folder, r.name.lower()))


def search(db: Session, owner_id: str, term: str) -> list[FileMeta]:
    """Case-insensitive name search across the owner's whole tree."""
    term = term.strip().lower()
    if not term:
        return []
    return (
        db.query(FileMeta)
        .filter(
            FileMeta.owner_id == owner_id,
            func.lower(FileMeta.name).contains(term, autoescape=True),
        )
        .order_by(FileMeta.created_at.desc())
        .all()
    )


def _check_move(db: Session, owner_id: str, record: FileMeta, target_parent_id: str | None) -> None:
    if target_parent_id is None:
        return
    target = _owned_folder(db, owner_id, target_parent_id)
    # walk up from the target; meeting the record means a cycle
    ancestor: FileMeta | None = target
    while ancestor is not None:
        if ancestor.id == record.id:
            raise BadRequest("Cannot move a folder into itself")
        ancestor = ancestor.parent


def update(
    db: Session,
    owner_id: str,
    record_id: str,
    new_name: str | None = None,
    reparent: bool = False,
    target_parent_id: str | None = None,
) -> FileMeta:
    """Rename and/or move a record in one commit.

    Both changes are checked before either is applied, so a rejected move
    leaves the name untouched.
    """
    record = get_owned(db, owner_id, record_id)
    name = _clean_name(new_name) if new_name is not None else None
    if reparent:
        _check_move(db, owner_id, record, target_parent_id)

    # storage key stays the same; only the display name changes
    if name is not None:
        record.name = name
    if reparent:
        record.parent_id = target_parent_id
    _commit(db)
    db.refresh(record)
    return record


def rename(db: Session, owner_id: str, record_id: str, new_name: str) -> FileMeta:
    return update(db, owner_id, record_id, new_name=new_name)


def move(db: Session, owner_id: str, record_id: str, target_parent_id: str | None) -> FileMeta:
    return update(db, owner_id, record_id, reparent=True, target_parent_id=target_parent_id)


def collect_subtree(db: Session, owner_id: str, record_ids: list[str]) -> Subtree:
    roots = [get_owned(db, owner_id, record_id) for record_id in dict.fromkeys(record_ids)]
    subtree = Subtree()
    level = roots
    seen: set[str] = set()
    while level:
        level = [record for record in level if record.id not in seen]
        if not level:
            break
        seen.update(record.id for record in level)
        subtree.levels.append([record.id for record in level])
        for record in level:
            if record.is_folder:
                subtree.folder_count += 1
            else:
                subtree.file_count += 1
                subtree.blob_keys.append(record.storage_key)

        folder_ids = [record.id for record in level if record.is_folder]
        if not folder_ids:
            break
        level = (
            db.query(FileMeta)
            .filter(FileMeta.parent_id.in_(folder_ids), FileMeta.owner_id == owner_id)
            .all()
        )
    return subtree


def delete_subtree(db: Session, subtree: Subtree) -> DeletionReport:
    """Remove the share links and records of ``subtree`` in one transaction.

    Levels go deepest first so no row is removed by cascade before its own
    DELETE runs, which keeps the counts exact.
    """
    record_ids = subtree.record_ids
    if not record_ids:
        return DeletionReport(records_deleted=0, links_deleted=0)
    try:
        links_deleted = (
            db.query(ShareLink)
            .filter(ShareLink.file_id.in_(record_ids))
            .delete(synchronize_session=False)
        )
        records_deleted = 0
        for level in reversed(subtree.levels):
            records_deleted += (
                db.query(FileMeta)
                .filter(FileMeta.id.in_(level))
                .delete(synchronize_session=False)
            )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Metadata delete failed")
        raise UpstreamFailure("Database unavailable") from exc
    _commit(db)
    db.expire_all()
    return DeletionReport(records_deleted=records_deleted, links_deleted=links_deleted)


def get_active_share_link(
    db: Session, file_id: str, now: datetime | None = None
) -> ShareLink | None:
    now = now or utcnow()
    return (
        db.query(ShareLink)
        .filter(ShareLink.file_id == file_id, ShareLink.expires_at > now)
        .order_by(ShareLink.expires_at.desc())
        .first()
    )


def get_or_create_share_link(
    db: Session,
    owner_id: str,
    file_id: str,
    days: int,
    now: datetime | None = None,
) -> tuple[ShareLink, bool]:
    """Return the file's active link, or create one lasting ``days``."""
    if days not in SHARE_LINK_DAYS:
        raise BadRequest("Link lifetime must be 1, 7 or 30 days")
    record = get_owned(db, owner_id, file_id)
    if record.is_folder:
        raise BadRequest("Folders cannot be shared")

    now = now or utcnow()
    existing = get_active_share_link(db, record.id, now)
    if existing is not None:
        return existing, False

    link = ShareLink(
        token=secrets.token_hex(8),
        file_id=record.id,
        created_by=owner_id,
        expires_at=now + timedelta(days=days),
        created_at=now,
    )
    db.add(link)
    _commit(db)
    db.refresh(link)
    logger.info("Created share link for file %s expiring %s", record.id, link.expires_at)
    return link, True


def record_view(db: Session, token: str) -> None:
    db.query(ShareLink).filter(ShareLink.token == token).update(
        {ShareLink.view_count: ShareLink.view_count + 1},
        synchronize_session=False,
    )
    _commit(db)
