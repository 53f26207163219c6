"""bitstore - bitstream storage adapter over object storage backends."""

from bitstore.errors import IOFailure, StoreNotReadyError
from bitstore.keys import KeyLayout, generate_identifier, is_registered, sanitize_identifier
from bitstore.models import ObjectMetadata, Provider, StorageDescriptor, WriteResult
from bitstore.store import BitstreamStore, StoreState

__all__ = [
    "BitstreamStore",
    "StoreState",
    "StorageDescriptor",
    "Provider",
    "ObjectMetadata",
    "WriteResult",
    "KeyLayout",
    "IOFailure",
    "StoreNotReadyError",
    "generate_identifier",
    "is_registered",
    "sanitize_identifier",
]
