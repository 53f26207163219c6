"""Google Cloud Storage backend."""

import asyncio
import logging
from pathlib import Path

from google.api_core.exceptions import NotFound
from google.cloud import storage

from bitstore.checksum import CHECKSUM_ALGORITHM, md5_from_base64
from bitstore.models import ObjectMetadata
from bitstore.storage.base import ObjectStorage

logger = logging.getLogger(__name__)


class GCSStorage(ObjectStorage):
    """Google Cloud Storage client.

    ``credentials_file`` is a service account JSON key; without it the
    client falls back to application default credentials.
    """

    def __init__(
        self,
        bucket: str,
        project: str | None = None,
        credentials_file: str | None = None,
        endpoint: str | None = None,
    ):
        client_options = {"api_endpoint": endpoint} if endpoint else None
        if credentials_file:
            self._client = storage.Client.from_service_account_json(
                credentials_file,
                project=project or None,
                client_options=client_options,
            )
        else:
            self._client = storage.Client(
                project=project or None,
                client_options=client_options,
            )
        self._bucket = self._client.bucket(bucket)

    async def init(self) -> None:
        """Verify that the bucket exists."""
        exists = await asyncio.to_thread(self._bucket.exists)
        if not exists:
            raise RuntimeError(f"GCS bucket does not exist: {self._bucket.name}")
        logger.info("GCS bucket exists: %s", self._bucket.name)

    async def read(self, key: str) -> bytes:
        blob = self._bucket.blob(key)
        try:
            return await asyncio.to_thread(blob.download_as_bytes)
        except NotFound as e:
            raise FileNotFoundError(key) from e

    async def write(
        self,
        key: str,
        source: Path,
        content_type: str = "application/octet-stream",
    ) -> None:
        blob = self._bucket.blob(key)
        await asyncio.to_thread(
            blob.upload_from_filename, str(source), content_type=content_type
        )
        logger.info("Uploaded %s", key)

    async def delete(self, key: str) -> None:
        blob = self._bucket.blob(key)
        try:
            await asyncio.to_thread(blob.delete)
        except NotFound:
            logger.debug("Delete of absent blob %s ignored", key)
            return
        logger.info("Deleted %s", key)

    async def stat(self, key: str, with_checksum: bool = False) -> ObjectMetadata:
        blob = await asyncio.to_thread(self._bucket.get_blob, key)
        if blob is None:
            raise FileNotFoundError(key)

        md5 = md5_from_base64(blob.md5_hash)
        return ObjectMetadata(
            size_bytes=int(blob.size or 0),
            modified=blob.updated,
            content_type=blob.content_type,
            checksum=md5,
            checksum_algorithm=CHECKSUM_ALGORITHM if md5 else None,
        )
