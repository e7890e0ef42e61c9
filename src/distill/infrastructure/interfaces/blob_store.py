"""Abstract interface for blob storage operations."""

from abc import ABC, abstractmethod
from typing import BinaryIO


class BlobStore(ABC):
    """Abstract base class for blob storage backends."""

    @abstractmethod
    def put(self, key: str, data: BinaryIO, size: int, content_type: str) -> str:
        """
        Stores an object.

        Args:
            key: Destination object key.
            data: File-like object containing the data.
            size: Size of the data in bytes.
            content_type: MIME type of the data.

        Returns:
            URI addressing the stored object.

        Raises:
            ServiceTransportError: If the upload fails.
        """

    @abstractmethod
    def get(self, uri: str) -> bytes:
        """
        Reads an object.

        Args:
            uri: URI returned by `put` or reported by another collaborator.

        Returns:
            The object contents.

        Raises:
            ServiceTransportError: If the download fails.
            ServiceRequestError: If the URI is not addressable by this store.
        """

    @abstractmethod
    def delete(self, uri: str) -> None:
        """
        Removes an object.

        Raises:
            ServiceTransportError: If the deletion fails.
        """
