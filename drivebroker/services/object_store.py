"""Thin wrapper around the S3 API: presigned PUT/GET and synchronous delete."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from drivebroker.core.config import get_settings
from drivebroker.core.errors import UpstreamFailure

logger = logging.getLogger(__name__)

_MISSING_OBJECT_CODES = {"404", "NoSuchKey", "NotFound"}


def _error_code(exc: Exception) -> str:
    response = getattr(exc, "response", None)
    if isinstance(response, dict):
        err = response.get("Error", {})
        if isinstance(err, dict):
            return str(err.get("Code", ""))
    return ""


class ObjectStoreClient:
    """Signs URLs for one bucket.

    All URLs share a fixed expiry window; it is configuration, not a
    per-request choice.
    """

    def __init__(self, client: Any, bucket_name: str, expires_in: int = 3600) -> None:
        self.client = client
        self.bucket_name = bucket_name
        self.expires_in = expires_in

    def _sign(self, operation: str, params: dict) -> str:
        try:
            url = self.client.generate_presigned_url(
                operation,
                Params={"Bucket": self.bucket_name, **params},
                ExpiresIn=self.expires_in,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.exception("Failed to sign %s for %s", operation, params.get("Key"))
            raise UpstreamFailure() from exc
        logger.debug("Signed %s for %s", operation, params.get("Key"))
        return url

    def presign_put(self, key: str, content_type: str) -> str:
        return self._sign("put_object", {"Key": key, "ContentType": content_type})

    def presign_get(
        self,
        key: str,
        disposition: str | None = None,
        response_content_type: str | None = None,
    ) -> str:
        params: dict = {"Key": key}
        if disposition:
            params["ResponseContentDisposition"] = disposition
        if response_content_type:
            params["ResponseContentType"] = response_content_type
        return self._sign("get_object", params)

    def delete(self, key: str) -> None:
        """Delete ``key``; a missing object counts as deleted."""
        try:
            self.client.delete_object(Bucket=self.bucket_name, Key=key)
        except ClientError as exc:
            if _error_code(exc) in _MISSING_OBJECT_CODES:
                logger.info("Object already absent: %s", key)
                return
            logger.warning("Failed to delete object %s: %s", key, _error_code(exc))
            raise UpstreamFailure() from exc
        except BotoCoreError as exc:
            logger.warning("Failed to delete object %s: %s", key, exc)
            raise UpstreamFailure() from exc
        logger.info("Deleted object: %s", key)


@lru_cache(maxsize=1)
def get_object_store() -> ObjectStoreClient:
    settings = get_settings()
    s3 = boto3.client(
        "s3",
        aws_access_key_id=settings.aws_access_key_id,
        aws_secret_access_key=settings.aws_secret_access_key,
        region_name=settings.aws_region,
        endpoint_url=settings.aws_s3_endpoint_url,
        config=Config(signature_version="s3v4"),
    )
    return ObjectStoreClient(s3, settings.aws_s3_bucket_name, settings.signed_url_expiry)
