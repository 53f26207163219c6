"""Build the object storage backend named by a storage descriptor."""

from __future__ import annotations

from collections.abc import Callable

from bitstore.models import Provider, StorageDescriptor
from bitstore.storage.base import ObjectStorage


def _filesystem(d: StorageDescriptor) -> ObjectStorage:
    from bitstore.storage.filesystem import FilesystemStorage
    return FilesystemStorage(d.container)


def _s3(d: StorageDescriptor) -> ObjectStorage:
    from bitstore.storage.s3 import S3Storage
    return S3Storage(
        bucket=d.container,
        endpoint=d.endpoint,
        access_key=d.identity,
        secret_key=d.credential,
        region=d.region,
    )


def _azure_blob(d: StorageDescriptor) -> ObjectStorage:
    from bitstore.storage.azure_blob import AzureBlobStorage
    return AzureBlobStorage(
        container=d.container,
        account=d.identity,
        account_key=d.credential,
        endpoint=d.endpoint,
    )


def _gcs(d: StorageDescriptor) -> ObjectStorage:
    from bitstore.storage.gcs import GCSStorage
    return GCSStorage(
        bucket=d.container,
        project=d.identity,
        credentials_file=d.credential,
        endpoint=d.endpoint,
    )


_BUILDERS: dict[Provider, Callable[[StorageDescriptor], ObjectStorage]] = {
    Provider.FILESYSTEM: _filesystem,
    Provider.S3: _s3,
    Provider.AZURE_BLOB: _azure_blob,
    Provider.GCS: _gcs,
}


def build_storage(descriptor: StorageDescriptor) -> ObjectStorage:
    """Construct (but do not initialize) the backend client."""
    if not descriptor.container:
        raise ValueError(f"No container configured for provider {descriptor.provider.value}")
    return _BUILDERS[descriptor.provider](descriptor)
