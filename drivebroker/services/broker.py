"""Access broker: the only component that signs object-store URLs.

The broker never sees file bytes. Callers get a short-lived URL and move the
bytes against the object store themselves.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.orm import Session

from drivebroker.core.errors import (
    BadRequest,
    InvalidOrExpiredLink,
    Unauthorized,
    UpstreamFailure,
)
from drivebroker.models.file import FileMeta
from drivebroker.services import metadata
from drivebroker.services.keys import (
    build_upload_key,
    content_disposition,
    owns_key,
    sanitize_object_name,
)
from drivebroker.services.link_validator import LinkValidator, ValidLink
from drivebroker.services.object_store import ObjectStoreClient

logger = logging.getLogger(__name__)

# Forced on explicit downloads so browsers never sniff and render the content
DOWNLOAD_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class UploadIntent:
    url: str
    key: str


@dataclass(frozen=True)
class DownloadIntent:
    url: str


@dataclass(frozen=True)
class DeleteResult:
    success: bool = True


@dataclass(frozen=True)
class SharedFile:
    name: str
    size: int
    mime_type: str


@dataclass(frozen=True)
class PublicDownloadIntent:
    url: str
    file: SharedFile


class AccessBroker:
    def __init__(
        self,
        store: ObjectStoreClient,
        validator: LinkValidator,
        db: Session,
        key_clock: Callable[[], int] = time.time_ns,
    ) -> None:
        self.store = store
        self.validator = validator
        self.db = db
        self.key_clock = key_clock

    def _require_owner(self, caller: str, key: str) -> None:
        if not owns_key(caller, key):
            logger.warning("Rejected access by %s to key outside its namespace: %r", caller, key)
            raise Unauthorized("Access denied: you can only access your own files")

    def upload_intent(self, caller: str, file_name: str, content_type: str) -> UploadIntent:
        name = sanitize_object_name(file_name)
        if not name:
            raise BadRequest("Missing fileName or fileType for upload")
        if not content_type.strip():
            raise BadRequest("Missing fileName or fileType for upload")

        key = build_upload_key(caller, name, self.key_clock())
        # Double-check the generated key against the same rule download/delete use
        self._require_owner(caller, key)
        url = self.store.presign_put(key, content_type)
        return UploadIntent(url=url, key=key)

    def download_intent(self, caller: str, key: str, file_name: str | None = None) -> DownloadIntent:
        self._require_owner(caller, key)
        if file_name:
            url = self.store.presign_get(
                key,
                disposition=content_disposition(file_name),
                response_content_type=DOWNLOAD_CONTENT_TYPE,
            )
        else:
            # inline: previews and thumbnails must render
            url = self.store.presign_get(key)
        return DownloadIntent(url=url)

    def delete(self, caller: str, key: str) -> DeleteResult:
        self._require_owner(caller, key)
        self.store.delete(key)
        return DeleteResult(success=True)

    def public_download_intent(self, token: str) -> PublicDownloadIntent:
        result = self.validator.validate(token)
        if not isinstance(result, ValidLink):
            logger.info("Public download refused: %s", type(result).__name__)
            raise InvalidOrExpiredLink()

        record = self.db.get(FileMeta, result.file_id)
        if record is None or record.is_folder:
            raise InvalidOrExpiredLink()

        try:
            url = self.store.presign_get(
                record.storage_key,
                disposition=content_disposition(record.name),
                response_content_type=DOWNLOAD_CONTENT_TYPE,
            )
        except UpstreamFailure as exc:
            # a storage error here would confirm the token is real
            raise InvalidOrExpiredLink() from exc
        try:
            metadata.record_view(self.db, result.token)
        except UpstreamFailure:
            # the URL is already signed; a lost count must not fail the download
            logger.warning("Could not record view for share link %s", result.token)
        return PublicDownloadIntent(
            url=url,
            file=SharedFile(name=record.name, size=record.size, mime_type=record.mime_type),
        )
