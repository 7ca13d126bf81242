"""Image retrieval from S3-compatible object storage."""

from __future__ import annotations

import logging
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    ReadTimeoutError,
)

from ..errors import (
    EmptyObject,
    ObjectNotFound,
    StorageAccessDenied,
    StorageUnavailable,
    Timeout,
)
from ..models.base import MediaType, RawImage

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}
_ACCESS_DENIED_CODES = {"403", "AccessDenied", "AllAccessDisabled"}


def media_type_for_key(key: str) -> MediaType:
    """Guess the media type from the key suffix.

    This is a naming heuristic, not content inspection: a case-insensitive
    ``.png`` ending selects PNG and every other key is treated as JPEG.
    """
    if key.lower().endswith(".png"):
        return MediaType.PNG
    return MediaType.JPEG


def build_s3_client(*, timeout: float, region: str | None = None) -> Any:
    """Create an S3 client with bounded timeouts and no automatic retries."""
    config = Config(
        connect_timeout=timeout,
        read_timeout=timeout,
        retries={"total_max_attempts": 1, "mode": "standard"},
    )
    return boto3.client("s3", region_name=region, config=config)


class S3ImageFetcher:
    """Resolves storage keys to fully materialised image bytes."""

    def __init__(self, bucket: str, *, client: Any | None = None, timeout: float = 10.0) -> None:
        self._bucket = bucket
        self._timeout = timeout
        self._client = client

    @property
    def bucket(self) -> str:
        return self._bucket

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = build_s3_client(timeout=self._timeout)
        return self._client

    def fetch(self, key: str) -> RawImage:
        """Download ``key`` and return its bytes with the derived media type."""
        client = self._get_client()
        logger.debug("Fetching s3://%s/%s", self._bucket, key)
        try:
            response = client.get_object(Bucket=self._bucket, Key=key)
            body = response["Body"]
            try:
                data = body.read()
            finally:
                body.close()
        except (ConnectTimeoutError, ReadTimeoutError) as exc:
            raise Timeout(
                f"Object store timed out after {self._timeout}s fetching {key!r}.",
                operation="storage",
            ) from exc
        except ClientError as exc:
            code = (exc.response.get("Error") or {}).get("Code")
            if code in _NOT_FOUND_CODES:
                raise ObjectNotFound(f"No object stored under {key!r}.") from exc
            if code in _ACCESS_DENIED_CODES:
                raise StorageAccessDenied(f"Access to {key!r} was denied: {code}") from exc
            raise StorageUnavailable(f"Object store rejected request for {key!r}: {code}") from exc
        except BotoCoreError as exc:
            raise StorageUnavailable(f"Failed to contact object store: {exc}") from exc

        if not data:
            raise EmptyObject(f"Object {key!r} contains no data.")

        media_type = media_type_for_key(key)
        logger.debug("Fetched %d bytes for %s as %s", len(data), key, media_type.value)
        return RawImage(key=key, data=bytes(data), media_type=media_type)
