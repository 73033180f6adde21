"""Share-token lookup and expiry check."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from drivebroker.models.share_link import ShareLink

_MAX_TOKEN_LENGTH = 64


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class ValidLink:
    token: str
    file_id: str
    expires_at: datetime


@dataclass(frozen=True)
class LinkNotFound:
    token: str


@dataclass(frozen=True)
class LinkExpired:
    token: str
    expires_at: datetime


LinkResult = ValidLink | LinkNotFound | LinkExpired


class LinkValidator:
    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow) -> None:
        self.db = db
        self.clock = clock

    def validate(self, token: str) -> LinkResult:
        """Resolve ``token`` to the file it shares.

        A miss is definitive. Expiry is strict: a link whose ``expires_at``
        is not after the current time is expired.
        """
        if not token or len(token) > _MAX_TOKEN_LENGTH:
            return LinkNotFound(token)

        link = self.db.get(ShareLink, token)
        if link is None:
            return LinkNotFound(token)

        expires_at = as_utc(link.expires_at)
        if expires_at <= self.clock():
            return LinkExpired(token, expires_at)
        return ValidLink(token=link.token, file_id=link.file_id, expires_at=expires_at)
