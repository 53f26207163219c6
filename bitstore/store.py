"""Bitstream store: maps internal ids onto a configured object storage backend."""

from __future__ import annotations

import asyncio
import enum
import io
import logging
import os
import shutil
import tempfile
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any, BinaryIO

from bitstore.checksum import CHECKSUM_ALGORITHM, file_checksum
from bitstore.errors import IOFailure, StoreNotReadyError
from bitstore.keys import KeyLayout, generate_identifier, is_registered, sanitize_identifier
from bitstore.models import StorageDescriptor, WriteResult
from bitstore.storage.base import ObjectStorage
from bitstore.storage.factory import build_storage

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class StoreState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    FAILED = "failed"


class BitstreamStore:
    """Facade over one object storage backend.

    The store is built from an immutable ``StorageDescriptor`` and must be
    initialized before use. Initialization never raises: a backend that cannot
    be constructed leaves the store in ``FAILED`` and every operation then
    fails fast with ``StoreNotReadyError``.

    Every backend exception is re-raised as ``IOFailure`` carrying the
    operation name and the storage key.

    Args:
        descriptor: Store configuration.
        registered: Predicate recognizing registered (externally managed)
            internal ids. Defaults to the ``-R`` flag test.
        storage_factory: Builds the backend client from the descriptor.
    """

    def __init__(
        self,
        descriptor: StorageDescriptor,
        registered: Callable[[str], bool] | None = None,
        storage_factory: Callable[[StorageDescriptor], ObjectStorage] = build_storage,
    ):
        self._descriptor = descriptor
        self._storage_factory = storage_factory
        self._storage: ObjectStorage | None = None
        self._state = StoreState.UNINITIALIZED
        self._layout = KeyLayout(
            subfolder=descriptor.subfolder.strip("/"),
            use_relative_path=descriptor.use_relative_path,
            digits_per_level=descriptor.digits_per_level,
            directory_levels=descriptor.directory_levels,
            registered=registered or is_registered,
        )

    @property
    def descriptor(self) -> StorageDescriptor:
        return self._descriptor

    @property
    def state(self) -> StoreState:
        return self._state

    def is_initialized(self) -> bool:
        return self._state is StoreState.READY

    def is_enabled(self) -> bool:
        """Whether this store is the active backend for its configured scope."""
        return self._descriptor.enabled

    async def initialize(self) -> None:
        """Build and probe the backend. No-op when already ready."""
        if self._state is StoreState.READY:
            return

        provider = self._descriptor.provider.value
        try:
            storage = self._storage_factory(self._descriptor)
            await storage.init()
        except Exception:
            logger.error(
                "Failed to initialize bitstream store with provider %s",
                provider,
                exc_info=True,
            )
            self._storage = None
            self._state = StoreState.FAILED
            return

        self._storage = storage
        self._state = StoreState.READY
        logger.info("Bitstream store initialized with provider %s", provider)

    def generate_identifier(self) -> str:
        return generate_identifier()

    def derive_key(self, identifier: str) -> str:
        """Storage key for an internal id under this store's configuration."""
        return self._layout.derive(identifier)

    def _require(self, operation: str, key: str) -> ObjectStorage:
        if self._state is not StoreState.READY or self._storage is None:
            raise StoreNotReadyError(operation, key, self._state.value)
        return self._storage

    async def read(self, identifier: str) -> BinaryIO:
        """Return the full object content as a binary stream."""
        key = self.derive_key(identifier)
        storage = self._require("read", key)
        try:
            data = await storage.read(key)
        except Exception as e:
            raise IOFailure("read", key, e) from e
        return io.BytesIO(data)

    async def write(
        self,
        identifier: str,
        content: BinaryIO,
        content_type: str | None = None,
    ) -> WriteResult:
        """Store ``content`` under ``identifier``.

        The stream is first copied to a local staging file. Size and MD5 are
        computed over the staged bytes, then the file is uploaded in a single
        backend call. The staging file is removed on every exit path.
        """
        key = self.derive_key(identifier)
        storage = self._require("write", key)

        fd, name = tempfile.mkstemp(
            prefix=f"{sanitize_identifier(identifier)[:40]}-",
            suffix=".bitstore",
            dir=self._descriptor.staging_dir,
        )
        os.close(fd)
        staged = Path(name)
        try:
            await asyncio.to_thread(_copy_to_file, content, staged)
            size = staged.stat().st_size
            checksum = await asyncio.to_thread(file_checksum, staged)
            await storage.write(key, staged, content_type or DEFAULT_CONTENT_TYPE)
        except Exception as e:
            raise IOFailure("write", key, e) from e
        finally:
            staged.unlink(missing_ok=True)

        return WriteResult(
            key=key,
            size_bytes=size,
            checksum=checksum,
            checksum_algorithm=CHECKSUM_ALGORITHM,
        )

    async def delete(self, identifier: str) -> None:
        """Remove the object. Deleting an absent object succeeds."""
        key = self.derive_key(identifier)
        storage = self._require("delete", key)
        try:
            await storage.delete(key)
        except FileNotFoundError:
            logger.debug("Delete of absent object %s ignored", key)
        except Exception as e:
            raise IOFailure("delete", key, e) from e

    async def stat(
        self,
        identifier: str,
        attributes: Iterable[str] | None = None,
    ) -> dict[str, Any]:
        """Object metadata restricted to ``attributes`` (all when None).

        Recognized names: size_bytes, modified (epoch ms), content_type,
        checksum, checksum_algorithm.
        """
        key = self.derive_key(identifier)
        storage = self._require("stat", key)
        wanted = None if attributes is None else list(attributes)
        with_checksum = wanted is None or bool(
            {"checksum", "checksum_algorithm"} & set(wanted)
        )
        try:
            meta = await storage.stat(key, with_checksum=with_checksum)
        except Exception as e:
            raise IOFailure("stat", key, e) from e
        return meta.as_dict(wanted)


def _copy_to_file(content: BinaryIO, path: Path) -> None:
    with open(path, "wb") as out:
        shutil.copyfileobj(content, out)
