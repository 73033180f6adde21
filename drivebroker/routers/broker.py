"""Single signing endpoint used by the browser for all object-store access."""

from typing import assert_never

from fastapi import APIRouter, Body, Depends
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import ValidationError
from sqlalchemy.orm import Session

from drivebroker.core.errors import BadRequest, validation_message
from drivebroker.models.database import get_db
from drivebroker.routers.auth import bearer_scheme, resolve_caller
from drivebroker.schemas.broker import (
    PUBLIC_DOWNLOAD,
    DeleteAction,
    DownloadAction,
    PublicDownloadAction,
    UploadAction,
    broker_action_adapter,
)
from drivebroker.services.broker import AccessBroker
from drivebroker.services.link_validator import LinkValidator
from drivebroker.services.object_store import ObjectStoreClient, get_object_store

router = APIRouter(tags=["broker"])


# --- broker dependency, built fresh for every request ---
def get_broker(
    db: Session = Depends(get_db),
    store: ObjectStoreClient = Depends(get_object_store),
) -> AccessBroker:
    return AccessBroker(store, LinkValidator(db), db)


@router.post("/s3-sign")
def sign(
    body: dict = Body(...),
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    broker: AccessBroker = Depends(get_broker),
    db: Session = Depends(get_db),
):
    # public_download is the only action open to anonymous callers;
    # everything else is authenticated before the body is inspected
    caller: str | None = None
    if body.get("action") != PUBLIC_DOWNLOAD:
        caller = resolve_caller(credentials, db)

    try:
        action = broker_action_adapter.validate_python(body)
    except ValidationError as exc:
        raise BadRequest(validation_message(exc.errors())) from exc

    if isinstance(action, PublicDownloadAction):
        intent = broker.public_download_intent(action.token)
        return {
            "url": intent.url,
            "file": {
                "name": intent.file.name,
                "size": intent.file.size,
                "mimeType": intent.file.mime_type,
            },
        }

    if isinstance(action, UploadAction):
        upload = broker.upload_intent(caller, action.file_name, action.file_type)
        return {"url": upload.url, "key": upload.key}
    elif isinstance(action, DownloadAction):
        download = broker.download_intent(caller, action.key, action.file_name)
        return {"url": download.url}
    elif isinstance(action, DeleteAction):
        result = broker.delete(caller, action.key)
        return {"success": result.success}
    else:
        assert_never(action)
