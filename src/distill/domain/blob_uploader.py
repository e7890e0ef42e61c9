"""Uploads local audio files to blob storage."""

import logging
import uuid
from typing import Callable

from distill.exceptions import ServiceError, UploadLocalIOError, UploadTransportError
from distill.infrastructure.interfaces import BlobStore

from .models import AudioSource, UploadedObject

logger = logging.getLogger(__name__)


def _random_key() -> str:
    return uuid.uuid4().hex


class BlobUploader:
    """Pushes an AudioSource to the blob store."""

    def __init__(
        self,
        store: BlobStore,
        key_prefix: str = "audio/",
        key_factory: Callable[[], str] | None = None,
    ):
        self._store = store
        self._key_prefix = key_prefix
        self._key_factory = key_factory or _random_key

    def upload(self, source: AudioSource) -> UploadedObject:
        """
        Uploads the audio file under a fresh object key.

        Args:
            source: The local audio file.

        Returns:
            UploadedObject addressing the stored copy.

        Raises:
            UploadLocalIOError: If the file is missing, empty or unreadable.
            UploadTransportError: If the blob store rejects the upload.
        """
        key = f"{self._key_prefix}{self._key_factory()}{source.path.suffix.lower()}"

        try:
            size = source.path.stat().st_size
            if size == 0:
                raise UploadLocalIOError(str(source.path), "file is empty")
            with source.path.open("rb") as data:
                uri = self._store.put(
                    key=key, data=data, size=size, content_type=source.content_type
                )
        except OSError as e:
            raise UploadLocalIOError(str(source.path), str(e), cause=e) from e
        except ServiceError as e:
            raise UploadTransportError(key, cause=e) from e

        logger.info(
            "Audio uploaded",
            extra={"path": str(source.path), "uri": uri, "content_type": source.content_type},
        )
        return UploadedObject.from_uri(uri)
