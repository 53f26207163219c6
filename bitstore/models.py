"""Value types shared by the store, its backends and the CLI."""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


class Provider(str, enum.Enum):
    """Object storage backend kind."""

    S3 = "s3"
    AZURE_BLOB = "azure-blob"
    GCS = "gcs"
    FILESYSTEM = "filesystem"

    @classmethod
    def parse(cls, value: str | Provider) -> Provider:
        """Resolve a configured provider name, accepting common aliases."""
        if isinstance(value, cls):
            return value
        name = (value or "").strip().lower()
        name = _PROVIDER_ALIASES.get(name, name)
        try:
            return cls(name)
        except ValueError:
            supported = [p.value for p in cls]
            raise ValueError(
                f"Unknown storage provider: {value!r}, supported: {supported}"
            ) from None


_PROVIDER_ALIASES = {
    "azblob": "azure-blob",
    "azure": "azure-blob",
    "fs": "filesystem",
    "local": "filesystem",
}


@dataclass(frozen=True)
class StorageDescriptor:
    """Immutable configuration of one bitstream store.

    Args:
        provider: Backend kind.
        container: Bucket/container name, or the root directory for the
            filesystem provider.
        subfolder: Optional key prefix inside the container.
        identity: Access key id / account name / project, depending on provider.
        credential: Secret paired with ``identity``.
        region: Backend region, if the provider needs one.
        endpoint: Endpoint URL override (MinIO, Azurite, fake GCS servers...).
        use_relative_path: Shard identifiers into nested path segments.
        enabled: Whether this store is the active backend for its scope.
        staging_dir: Directory for temporary staging files (None = system temp).
        digits_per_level: Characters per sharding directory level.
        directory_levels: Maximum number of sharding directory levels.
    """

    provider: Provider
    container: str
    subfolder: str = ""
    identity: str = ""
    credential: str = field(default="", repr=False)
    region: str = ""
    endpoint: str = ""
    use_relative_path: bool = True
    enabled: bool = True
    staging_dir: str | None = None
    digits_per_level: int = 2
    directory_levels: int = 3

    def __post_init__(self):
        object.__setattr__(self, "provider", Provider.parse(self.provider))
        if self.digits_per_level < 1:
            raise ValueError("digits_per_level must be >= 1")
        if self.directory_levels < 1:
            raise ValueError("directory_levels must be >= 1")


METADATA_ATTRIBUTES = (
    "size_bytes",
    "modified",
    "content_type",
    "checksum",
    "checksum_algorithm",
)


@dataclass(frozen=True)
class ObjectMetadata:
    """Metadata reported by a backend stat call."""

    size_bytes: int
    modified: datetime | None = None
    content_type: str | None = None
    checksum: str | None = None
    checksum_algorithm: str | None = None

    def as_dict(self, attributes: Iterable[str] | None = None) -> dict[str, Any]:
        """Render the requested attributes; ``modified`` becomes epoch milliseconds.

        Unknown attribute names are ignored. ``None`` selects every attribute.
        """
        wanted = METADATA_ATTRIBUTES if attributes is None else set(attributes)
        values = {
            "size_bytes": self.size_bytes,
            "modified": (
                int(self.modified.timestamp() * 1000) if self.modified else None
            ),
            "content_type": self.content_type,
            "checksum": self.checksum,
            "checksum_algorithm": self.checksum_algorithm,
        }
        return {name: values[name] for name in METADATA_ATTRIBUTES if name in wanted}


@dataclass(frozen=True)
class WriteResult:
    """Observable outcome of a successful write."""

    key: str
    size_bytes: int
    checksum: str
    checksum_algorithm: str
