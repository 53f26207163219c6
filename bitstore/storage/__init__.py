"""Object storage backends."""

from bitstore.storage.base import ObjectStorage
from bitstore.storage.factory import build_storage
from bitstore.storage.filesystem import FilesystemStorage

__all__ = ["ObjectStorage", "FilesystemStorage", "build_storage"]
