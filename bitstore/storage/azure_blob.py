"""Azure Blob Storage backend."""

import asyncio
import logging
from pathlib import Path

from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError
from azure.storage.blob import BlobServiceClient, ContentSettings

from bitstore.checksum import CHECKSUM_ALGORITHM
from bitstore.models import ObjectMetadata
from bitstore.storage.base import ObjectStorage

logger = logging.getLogger(__name__)


class AzureBlobStorage(ObjectStorage):
    """Azure Blob Storage client.

    ``account`` names the storage account; ``endpoint`` overrides the
    account URL (e.g. for Azurite).
    """

    def __init__(
        self,
        container: str,
        account: str | None = None,
        account_key: str | None = None,
        endpoint: str | None = None,
    ):
        account_url = endpoint or f"https://{account}.blob.core.windows.net"
        self._service = BlobServiceClient(
            account_url=account_url,
            credential=account_key or None,
        )
        self._container = self._service.get_container_client(container)

    async def init(self) -> None:
        """Create container if it doesn't exist."""
        try:
            await asyncio.to_thread(self._container.create_container)
            logger.info("Azure container created: %s", self._container.container_name)
        except ResourceExistsError:
            logger.info("Azure container exists: %s", self._container.container_name)

    async def read(self, key: str) -> bytes:
        blob = self._container.get_blob_client(key)
        try:
            downloader = await asyncio.to_thread(blob.download_blob)
        except ResourceNotFoundError as e:
            raise FileNotFoundError(key) from e
        return await asyncio.to_thread(downloader.readall)

    async def write(
        self,
        key: str,
        source: Path,
        content_type: str = "application/octet-stream",
    ) -> None:
        blob = self._container.get_blob_client(key)
        await asyncio.to_thread(self._upload, blob, Path(source), content_type)
        logger.info("Uploaded %s", key)

    @staticmethod
    def _upload(blob, source: Path, content_type: str) -> None:
        with open(source, "rb") as data:
            blob.upload_blob(
                data,
                overwrite=True,
                content_settings=ContentSettings(content_type=content_type),
            )

    async def delete(self, key: str) -> None:
        blob = self._container.get_blob_client(key)
        try:
            await asyncio.to_thread(blob.delete_blob)
        except ResourceNotFoundError:
            logger.debug("Delete of absent blob %s ignored", key)
            return
        logger.info("Deleted %s", key)

    async def stat(self, key: str, with_checksum: bool = False) -> ObjectMetadata:
        blob = self._container.get_blob_client(key)
        try:
            props = await asyncio.to_thread(blob.get_blob_properties)
        except ResourceNotFoundError as e:
            raise FileNotFoundError(key) from e

        settings = props.content_settings
        md5 = bytes(settings.content_md5).hex() if settings.content_md5 else None
        return ObjectMetadata(
            size_bytes=int(props.size),
            modified=props.last_modified,
            content_type=settings.content_type,
            checksum=md5,
            checksum_algorithm=CHECKSUM_ALGORITHM if md5 else None,
        )
