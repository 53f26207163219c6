"""Local filesystem object storage (assetstore directory)."""

import asyncio
import logging
import os
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from bitstore.checksum import CHECKSUM_ALGORITHM, file_checksum
from bitstore.models import ObjectMetadata
from bitstore.storage.base import ObjectStorage

logger = logging.getLogger(__name__)

_MKSTEMP_ATTEMPTS = 3


class FilesystemStorage(ObjectStorage):
    """Stores each object as a file under a root directory."""

    def __init__(self, root: str | Path):
        self._root = Path(root).expanduser().resolve()

    @property
    def root(self) -> Path:
        return self._root

    def _path(self, key: str) -> Path:
        path = (self._root / key).resolve()
        if path == self._root or not path.is_relative_to(self._root):
            raise ValueError(f"Key escapes storage root: {key!r}")
        return path

    async def init(self) -> None:
        """Create the root directory if it doesn't exist."""
        await asyncio.to_thread(self._root.mkdir, parents=True, exist_ok=True)
        logger.info("Filesystem assetstore at %s", self._root)

    async def read(self, key: str) -> bytes:
        return await asyncio.to_thread(self._path(key).read_bytes)

    async def write(
        self,
        key: str,
        source: Path,
        content_type: str = "application/octet-stream",
    ) -> None:
        await asyncio.to_thread(self._write, self._path(key), Path(source))
        logger.info("Stored %s", key)

    @staticmethod
    def _mkstemp(target: Path) -> tuple[int, str]:
        # A concurrent delete may prune the shard directory between mkdir and
        # mkstemp; once the temp file exists the directory is no longer empty.
        for attempt in range(_MKSTEMP_ATTEMPTS):
            target.parent.mkdir(parents=True, exist_ok=True)
            try:
                return tempfile.mkstemp(prefix=f".{target.name}.", dir=target.parent)
            except FileNotFoundError:
                if attempt == _MKSTEMP_ATTEMPTS - 1:
                    raise
                logger.debug("Directory %s vanished, recreating", target.parent)
        raise AssertionError("unreachable")

    @classmethod
    def _write(cls, target: Path, source: Path) -> None:
        fd, tmp_name = cls._mkstemp(target)
        try:
            with os.fdopen(fd, "wb") as out, open(source, "rb") as src:
                shutil.copyfileobj(src, out)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._delete, self._path(key))
        logger.info("Deleted %s", key)

    def _delete(self, path: Path) -> None:
        path.unlink(missing_ok=True)
        # Prune now-empty sharding directories, never the root itself.
        parent = path.parent
        while parent != self._root and parent.is_relative_to(self._root):
            try:
                parent.rmdir()
            except OSError:
                break
            parent = parent.parent

    async def stat(self, key: str, with_checksum: bool = False) -> ObjectMetadata:
        return await asyncio.to_thread(self._stat, self._path(key), with_checksum)

    @staticmethod
    def _stat(path: Path, with_checksum: bool) -> ObjectMetadata:
        if not path.is_file():
            raise FileNotFoundError(str(path))
        st = path.stat()
        checksum = file_checksum(path) if with_checksum else None
        return ObjectMetadata(
            size_bytes=st.st_size,
            modified=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
            content_type=None,
            checksum=checksum,
            checksum_algorithm=CHECKSUM_ALGORITHM if checksum else None,
        )
