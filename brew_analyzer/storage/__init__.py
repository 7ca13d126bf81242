"""Object storage access for uploaded brew photos."""

from .s3 import S3ImageFetcher, build_s3_client, media_type_for_key

__all__ = ["S3ImageFetcher", "build_s3_client", "media_type_for_key"]
