"""S3-compatible object storage (MinIO / AWS S3 / any S3 endpoint)."""

import asyncio
import logging
from pathlib import Path

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from bitstore.checksum import CHECKSUM_ALGORITHM
from bitstore.models import ObjectMetadata
from bitstore.storage.base import ObjectStorage

logger = logging.getLogger(__name__)

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}


def _is_missing(error: ClientError) -> bool:
    return str(error.response.get("Error", {}).get("Code")) in _MISSING_CODES


class S3Storage(ObjectStorage):
    """S3-compatible object storage client."""

    def __init__(
        self,
        bucket: str,
        endpoint: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        region: str | None = None,
    ):
        self._bucket = bucket
        self._region = region
        self._client = boto3.client(
            "s3",
            endpoint_url=endpoint or None,
            aws_access_key_id=access_key or None,
            aws_secret_access_key=secret_key or None,
            region_name=region or None,
            config=Config(signature_version="s3v4"),
        )

    async def init(self) -> None:
        """Create bucket if it doesn't exist."""
        try:
            await asyncio.to_thread(self._client.head_bucket, Bucket=self._bucket)
            logger.info("S3 bucket exists: %s", self._bucket)
        except ClientError:
            kwargs = {"Bucket": self._bucket}
            if self._region and self._region != "us-east-1":
                kwargs["CreateBucketConfiguration"] = {
                    "LocationConstraint": self._region
                }
            await asyncio.to_thread(self._client.create_bucket, **kwargs)
            logger.info("S3 bucket created: %s", self._bucket)

    async def read(self, key: str) -> bytes:
        try:
            resp = await asyncio.to_thread(
                self._client.get_object,
                Bucket=self._bucket,
                Key=key,
            )
        except ClientError as e:
            if _is_missing(e):
                raise FileNotFoundError(key) from e
            raise
        data = await asyncio.to_thread(resp["Body"].read)
        return data

    async def write(
        self,
        key: str,
        source: Path,
        content_type: str = "application/octet-stream",
    ) -> None:
        await asyncio.to_thread(
            self._client.upload_file,
            str(source),
            self._bucket,
            key,
            ExtraArgs={"ContentType": content_type},
        )
        logger.info("Uploaded %s", key)

    async def delete(self, key: str) -> None:
        # DeleteObject succeeds for absent keys.
        await asyncio.to_thread(
            self._client.delete_object,
            Bucket=self._bucket,
            Key=key,
        )
        logger.info("Deleted %s", key)

    async def stat(self, key: str, with_checksum: bool = False) -> ObjectMetadata:
        try:
            resp = await asyncio.to_thread(
                self._client.head_object,
                Bucket=self._bucket,
                Key=key,
            )
        except ClientError as e:
            if _is_missing(e):
                raise FileNotFoundError(key) from e
            raise

        # Multipart uploads have "<md5-of-md5s>-<parts>" ETags, not content MD5.
        etag = (resp.get("ETag") or "").strip('"')
        checksum = etag if etag and "-" not in etag else None
        return ObjectMetadata(
            size_bytes=int(resp["ContentLength"]),
            modified=resp.get("LastModified"),
            content_type=resp.get("ContentType"),
            checksum=checksum,
            checksum_algorithm=CHECKSUM_ALGORITHM if checksum else None,
        )
