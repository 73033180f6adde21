from urllib.parse import parse_qs, urlparse

import boto3
import pytest
from botocore.config import Config
from botocore.exceptions import EndpointConnectionError

from drivebroker.core.errors import UpstreamFailure
from drivebroker.services.keys import content_disposition
from drivebroker.services.object_store import ObjectStoreClient


def test_presign_put_binds_key_and_content_type(store, fake_s3):
    url = store.presign_put("u1/1-a.pdf", "application/pdf")

    assert url.startswith("https://drive-bucket.s3.example/u1/1-a.pdf")
    operation, params, expires = fake_s3.signed[-1]
    assert operation == "put_object"
    assert params == {"Bucket": "drive-bucket", "Key": "u1/1-a.pdf", "ContentType": "application/pdf"}
    assert expires == 3600


def test_presign_get_inline_has_no_overrides(store, fake_s3):
    store.presign_get("u1/1-a.png")
    assert fake_s3.last_params == {"Bucket": "drive-bucket", "Key": "u1/1-a.png"}


def test_presign_get_with_overrides(store, fake_s3):
    store.presign_get("u1/1-a.png", disposition="attachment", response_content_type="application/octet-stream")
    assert fake_s3.last_params["ResponseContentDisposition"] == "attachment"
    assert fake_s3.last_params["ResponseContentType"] == "application/octet-stream"


def test_delete_missing_object_is_not_an_error(store, fake_s3):
    fake_s3.report_missing = True
    store.delete("u1/never-uploaded")
    assert fake_s3.deleted == []


def test_delete_failure_becomes_upstream_failure(store, fake_s3):
    fake_s3.failing_keys.add("u1/1-a.pdf")
    with pytest.raises(UpstreamFailure) as exc:
        store.delete("u1/1-a.pdf")
    # provider detail stays out of the public message
    assert "AccessDenied" not in exc.value.message


def test_delete_connection_error_becomes_upstream_failure(store, fake_s3, monkeypatch):
    def _boom(**kwargs):
        raise EndpointConnectionError(endpoint_url="https://s3.example")

    monkeypatch.setattr(fake_s3, "delete_object", _boom)
    with pytest.raises(UpstreamFailure):
        store.delete("u1/1-a.pdf")


def test_real_presigned_get_carries_disposition_and_expiry():
    s3 = boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="test",
        aws_secret_access_key="test",
        config=Config(signature_version="s3v4"),
    )
    store = ObjectStoreClient(s3, "drive-bucket", expires_in=3600)
    header = content_disposition("résumé.pdf")

    url = store.presign_get("u1/1-résumé.pdf", disposition=header, response_content_type="application/octet-stream")

    query = parse_qs(urlparse(url).query)
    assert query["response-content-disposition"] == [header]
    assert query["response-content-type"] == ["application/octet-stream"]
    assert query["X-Amz-Expires"] == ["3600"]
