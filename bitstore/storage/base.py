"""Abstract base class for object storage."""

from abc import ABC, abstractmethod
from pathlib import Path

from bitstore.models import ObjectMetadata


class ObjectStorage(ABC):
    """Abstract object storage interface (filesystem/S3/Azure Blob/GCS).

    Implementations raise ``FileNotFoundError`` for missing objects on
    ``read`` and ``stat``; any other exception is a backend error.
    """

    async def init(self) -> None:
        """Initialize storage (e.g., create bucket). Override if needed."""

    @abstractmethod
    async def read(self, key: str) -> bytes:
        """Return the full content of the object at ``key``."""
        ...

    @abstractmethod
    async def write(
        self,
        key: str,
        source: Path,
        content_type: str = "application/octet-stream",
    ) -> None:
        """Upload the local file ``source`` to ``key`` in a single call."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete the object at ``key``. A missing object is not an error."""
        ...

    @abstractmethod
    async def stat(self, key: str, with_checksum: bool = False) -> ObjectMetadata:
        """Return object metadata. ``with_checksum`` may trigger extra work."""
        ...
