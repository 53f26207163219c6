"""Checksum helpers."""

from __future__ import annotations

import base64
import hashlib
from pathlib import Path

CHECKSUM_ALGORITHM = "MD5"

BUFFER_SIZE = 64 * 1024


def file_checksum(path: str | Path, algorithm: str = CHECKSUM_ALGORITHM) -> str:
    """Hex digest of a local file, read in fixed-size chunks."""
    digest = hashlib.new(algorithm.lower())
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(BUFFER_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def bytes_checksum(data: bytes, algorithm: str = CHECKSUM_ALGORITHM) -> str:
    return hashlib.new(algorithm.lower(), data).hexdigest()


def md5_from_base64(value: str | bytes | None) -> str | None:
    """Convert a base64 MD5 (GCS, Content-MD5 headers) to hex."""
    if not value:
        return None
    return base64.b64decode(value).hex()
