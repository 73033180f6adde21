from datetime import datetime, timedelta, timezone

import pytest

from drivebroker.models import FileMeta, ShareLink
from drivebroker.services.link_validator import (
    LinkExpired,
    LinkNotFound,
    LinkValidator,
    ValidLink,
)

NOW = datetime(2026, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture()
def shared_file(db_session, u1):
    record = FileMeta(
        owner_id="u1",
        name="report.pdf",
        size=10,
        mime_type="application/pdf",
        storage_key="u1/1-report.pdf",
    )
    db_session.add(record)
    db_session.commit()
    return record


def _link(db_session, file_id, token, expires_at):
    link = ShareLink(token=token, file_id=file_id, created_by="u1", expires_at=expires_at)
    db_session.add(link)
    db_session.commit()
    return link


def _validator(db_session, now=NOW):
    return LinkValidator(db_session, clock=lambda: now)


def test_unknown_token_is_not_found(db_session):
    assert _validator(db_session).validate("nope") == LinkNotFound("nope")


@pytest.mark.parametrize("token", ["", "x" * 65])
def test_malformed_token_short_circuits(db_session, token):
    assert isinstance(_validator(db_session).validate(token), LinkNotFound)


def test_live_token_is_valid(db_session, shared_file):
    _link(db_session, shared_file.id, "abc123", NOW + timedelta(days=7))

    result = _validator(db_session).validate("abc123")

    assert isinstance(result, ValidLink)
    assert result.file_id == shared_file.id
    assert result.expires_at == NOW + timedelta(days=7)


def test_expired_by_one_second(db_session, shared_file):
    _link(db_session, shared_file.id, "late", NOW - timedelta(seconds=1))
    assert isinstance(_validator(db_session).validate("late"), LinkExpired)


def test_expiry_is_strict_at_the_boundary(db_session, shared_file):
    _link(db_session, shared_file.id, "edge", NOW)
    assert isinstance(_validator(db_session).validate("edge"), LinkExpired)
    assert isinstance(_validator(db_session, NOW - timedelta(microseconds=1)).validate("edge"), ValidLink)


def test_expired_link_rows_are_kept(db_session, shared_file):
    _link(db_session, shared_file.id, "old", NOW - timedelta(days=30))
    _validator(db_session).validate("old")
    assert db_session.get(ShareLink, "old") is not None


def test_naive_timestamps_are_read_as_utc(db_session, shared_file):
    _link(db_session, shared_file.id, "naive", (NOW + timedelta(hours=1)).replace(tzinfo=None))
    assert isinstance(_validator(db_session).validate("naive"), ValidLink)
