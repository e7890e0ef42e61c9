"""MinIO implementation of the BlobStore interface."""

import logging
from datetime import timedelta
from typing import BinaryIO

from minio import Minio

from distill.exceptions import ServiceRequestError, ServiceTransportError

from .interfaces import BlobStore

logger = logging.getLogger(__name__)

URI_SCHEME = "s3://"


def build_uri(bucket_name: str, object_name: str) -> str:
    return f"{URI_SCHEME}{bucket_name}/{object_name}"


def parse_uri(uri: str) -> tuple[str, str]:
    """
    Splits an "s3://bucket/key" URI into bucket and object name.

    Raises:
        ServiceRequestError: If the URI has another scheme or no key.
    """
    if not uri.startswith(URI_SCHEME):
        raise ServiceRequestError(f"Unsupported blob URI '{uri}'")
    bucket_name, _, object_name = uri[len(URI_SCHEME) :].partition("/")
    if not bucket_name or not object_name:
        raise ServiceRequestError(f"Blob URI '{uri}' lacks a bucket or key")
    return bucket_name, object_name


class MinioBlobStore(BlobStore):
    """Handles blob storage operations using MinIO."""

    def __init__(
        self,
        client: Minio,
        bucket_name: str,
        presign_expiry: timedelta = timedelta(hours=12),
    ):
        self._client = client
        self._bucket_name = bucket_name
        self._presign_expiry = presign_expiry

    @property
    def bucket_name(self) -> str:
        return self._bucket_name

    def put(self, key: str, data: BinaryIO, size: int, content_type: str) -> str:
        try:
            self._client.put_object(
                bucket_name=self._bucket_name,
                object_name=key,
                data=data,
                length=size,
                content_type=content_type,
            )
        except Exception as e:
            logger.exception(
                "MinIO upload failed",
                extra={"bucket_name": self._bucket_name, "object_name": key},
            )
            raise ServiceTransportError(f"Upload of '{key}' failed", cause=e) from e

        logger.info(
            "File uploaded to MinIO",
            extra={"bucket_name": self._bucket_name, "object_name": key, "size": size},
        )
        return build_uri(self._bucket_name, key)

    def get(self, uri: str) -> bytes:
        bucket_name, object_name = parse_uri(uri)
        try:
            response = self._client.get_object(bucket_name, object_name)
            try:
                data = response.read()
            finally:
                response.close()
                response.release_conn()
        except Exception as e:
            logger.exception(
                "MinIO download failed",
                extra={"bucket_name": bucket_name, "object_name": object_name},
            )
            raise ServiceTransportError(f"Download of '{uri}' failed", cause=e) from e

        logger.info(
            "File downloaded from MinIO",
            extra={"bucket_name": bucket_name, "object_name": object_name},
        )
        return data

    def delete(self, uri: str) -> None:
        bucket_name, object_name = parse_uri(uri)
        try:
            self._client.remove_object(bucket_name, object_name)
        except Exception as e:
            logger.exception(
                "MinIO delete failed",
                extra={"bucket_name": bucket_name, "object_name": object_name},
            )
            raise ServiceTransportError(f"Deletion of '{uri}' failed", cause=e) from e
        logger.info(
            "File deleted from MinIO",
            extra={"bucket_name": bucket_name, "object_name": object_name},
        )

    def presigned_url(self, uri: str) -> str:
        """Returns a time-limited HTTP URL for reading the object."""
        bucket_name, object_name = parse_uri(uri)
        try:
            return self._client.presigned_get_object(
                bucket_name, object_name, expires=self._presign_expiry
            )
        except Exception as e:
            logger.exception(
                "MinIO presign failed",
                extra={"bucket_name": bucket_name, "object_name": object_name},
            )
            raise ServiceTransportError(f"Presigning '{uri}' failed", cause=e) from e

    def ensure_bucket_exists(self) -> None:
        try:
            if not self._client.bucket_exists(self._bucket_name):
                self._client.make_bucket(self._bucket_name)
                logger.info("Bucket created", extra={"bucket_name": self._bucket_name})
            else:
                logger.info(
                    "Bucket already exists", extra={"bucket_name": self._bucket_name}
                )
        except Exception as e:
            logger.exception(
                "MinIO bucket check failed", extra={"bucket_name": self._bucket_name}
            )
            raise ServiceTransportError(
                f"Cannot access bucket '{self._bucket_name}'", cause=e
            ) from e
